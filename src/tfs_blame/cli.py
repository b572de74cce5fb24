"""Command line interface for TFS Blame."""

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import LOG_LEVELS, BlameConfig, ConfigManager
from .exceptions import BlameError
from .files import collect_input_files
from .models import FileResult
from .session import blame_files
from .utils.exception_logger import ExceptionLogger

logger = logging.getLogger(__name__)

console = Console()
error_console = Console(stderr=True)


def _results_to_json(results: List[FileResult]) -> str:
    payload = []
    for result in results:
        payload.append(
            {
                "path": result.input_file.absolute_path,
                "lines": [
                    {
                        "line": number,
                        "revision": record.revision,
                        "author": record.author,
                        "date": record.date.isoformat() if record.date else None,
                    }
                    for number, record in enumerate(result.records, start=1)
                ],
            }
        )
    return json.dumps(payload, indent=2)


def _display_results(results: List[FileResult]) -> None:
    for result in results:
        table = Table(title=result.input_file.display_path, title_justify="left")
        table.add_column("Line", justify="right", style="dim")
        table.add_column("Revision", style="cyan")
        table.add_column("Author", style="green")
        table.add_column("Date")
        for number, record in enumerate(result.records, start=1):
            table.add_row(
                str(number),
                record.revision,
                record.author,
                record.date.isoformat() if record.date else "-",
            )
        console.print(table)


@click.group()
@click.option("--config", "-c", type=click.Path(dir_okay=False), help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(version=__version__, prog_name="tfs-blame")
@click.pass_context
def cli(ctx, config: Optional[str], verbose: bool):
    """Line-by-line blame for TFS files through the annotation engine.

    \b
    EXAMPLES:
      tfs-blame config --set-executable /opt/tfs/SonarTfsAnnotate.exe
      tfs-blame annotate src/Program.cs src/Util.cs
      tfs-blame annotate --json src/Program.cs
    """
    ctx.ensure_object(dict)

    if config:
        config_manager = ConfigManager(Path(config))
    else:
        config_manager = ConfigManager.create_with_backtrack()

    try:
        blame_config = config_manager.load()
    except ValueError as e:
        error_console.print(f"❌ {e}", style="red", markup=False, soft_wrap=True)
        sys.exit(1)

    level = logging.DEBUG if verbose else getattr(logging, blame_config.log_level)
    logging.basicConfig(level=level, format="%(levelname)s:%(name)s:%(message)s")

    ctx.obj["verbose"] = verbose
    ctx.obj["config_manager"] = config_manager
    ctx.obj["config"] = blame_config
    ctx.obj["project_root"] = config_manager.config_path.parent.parent


@cli.command()
@click.argument(
    "files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False)
)
@click.option(
    "--executable",
    "-e",
    type=click.Path(dir_okay=False),
    help="Annotation engine to run (overrides config and TFS_BLAME_EXECUTABLE)",
)
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON")
@click.pass_context
def annotate(ctx, files, executable: Optional[str], as_json: bool):
    """Blame FILES, one engine request per file, in the given order."""
    blame_config: BlameConfig = ctx.obj["config"]
    context = {"files": len(files), "executable": executable}

    try:
        resolved = blame_config.resolve_executable(
            Path(executable) if executable else None
        )
        context["executable"] = str(resolved)
        input_files = collect_input_files(files)
        results = blame_files(
            resolved,
            input_files,
            encoding=blame_config.encoding,
            shutdown_timeout=blame_config.shutdown_timeout,
        )
    except BlameError as e:
        ExceptionLogger.for_project(ctx.obj["project_root"]).log_exception(
            e, context=context
        )
        error_console.print(f"❌ {e}", style="red", markup=False, soft_wrap=True)
        sys.exit(1)

    if as_json:
        click.echo(_results_to_json(results))
    else:
        _display_results(results)

    if len(results) < len(input_files):
        error_console.print(
            f"⚠️  Engine stopped after {len(results)} of {len(input_files)} files",
            style="yellow",
            markup=False,
            soft_wrap=True,
        )


@cli.command("config")
@click.option(
    "--set-executable",
    type=click.Path(exists=True, dir_okay=False),
    help="Store the annotation engine path",
)
@click.option(
    "--set-log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Store the default logging level",
)
@click.pass_context
def config_command(ctx, set_executable: Optional[str], set_log_level: Optional[str]):
    """Show or update the configuration."""
    config_manager: ConfigManager = ctx.obj["config_manager"]
    blame_config: BlameConfig = ctx.obj["config"]

    updates = {}
    if set_executable:
        updates["executable"] = str(Path(set_executable).resolve())
    if set_log_level:
        updates["log_level"] = set_log_level
    if updates:
        blame_config = config_manager.update_config(**updates)
        console.print(
            f"✅ Configuration saved to {config_manager.config_path}",
            style="green",
            markup=False,
        )

    table = Table(title="TFS Blame configuration", title_justify="left")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in blame_config.model_dump(mode="json").items():
        table.add_row(key, "-" if value is None else str(value))
    console.print(table)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
