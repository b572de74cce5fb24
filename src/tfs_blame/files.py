"""Builds the list of files handed to a blame session."""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .models import InputFile

logger = logging.getLogger(__name__)


def count_lines(path: Path) -> int:
    """Count the lines of a file the way the engine numbers them.

    A final newline starts one more, empty, line; an empty file has one line.
    """
    with open(path, "rb") as f:
        return f.read().count(b"\n") + 1


def collect_input_files(
    paths: Iterable[Union[str, Path]], base_dir: Optional[Path] = None
) -> List[InputFile]:
    """Turn paths on disk into session input, keeping their order.

    Args:
        paths: Files to annotate
        base_dir: Directory relative paths are reported against
            (defaults to the current directory)

    Returns:
        One InputFile per path with an absolute path and line count

    Raises:
        FileNotFoundError: If a path does not name a regular file
    """
    base = (base_dir or Path.cwd()).resolve()
    input_files = []
    for raw_path in paths:
        path = Path(raw_path).resolve()
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {raw_path}")

        try:
            relative_path: Optional[str] = str(path.relative_to(base))
        except ValueError:
            relative_path = None

        input_files.append(
            InputFile(
                absolute_path=os.fspath(path),
                lines=count_lines(path),
                relative_path=relative_path,
            )
        )
    logger.debug(f"Collected {len(input_files)} files to blame")
    return input_files
