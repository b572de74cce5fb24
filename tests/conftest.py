"""
Shared pytest fixtures for TFS Blame tests.

Provides a scripted stand-in for the annotation engine: a small Python
program written to a temporary directory that speaks the engine side of the
protocol and records the raw bytes of every request it receives.
"""

import json
import os
import stat
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pytest

FAKE_ENGINE_SOURCE = '''#!{python}
import json
import sys

with open({script_path!r}, encoding="utf-8") as f:
    script = json.load(f)

requests = open({requests_path!r}, "wb")
out = sys.stdout.buffer


def emit(lines):
    for line in lines:
        out.write((line + "\\n").encode("utf-8"))
    out.flush()


for raw in sys.stdin.buffer:
    requests.write(raw)
    requests.flush()
    path = raw.decode("utf-8").rstrip("\\r\\n")
    if script.get("stderr_before_reply"):
        sys.stderr.write("W" * script["stderr_before_reply"])
        sys.stderr.flush()
    reply = script["responses"].get(path)
    if reply is None:
        emit([path, "1", "r1 alice 01/02/2020"])
        continue
    if isinstance(reply, dict):
        emit(reply["lines"])
        if reply.get("exit"):
            break
    else:
        emit(reply)

requests.close()
sys.stderr.write(script.get("stderr", ""))
sys.stderr.flush()
sys.exit(script.get("exit_code", 0))
'''

Reply = Union[List[str], Dict[str, Any]]


class FakeEngine:
    """Handle on a generated fake engine executable."""

    def __init__(self, directory: Path):
        self.directory = directory
        self.executable = directory / "fake_engine.py"
        self.script_path = directory / "fake_engine.json"
        self.requests_path = directory / "fake_engine.requests"

    def configure(
        self,
        responses: Optional[Dict[str, Reply]] = None,
        exit_code: int = 0,
        stderr: str = "",
        stderr_before_reply: int = 0,
    ) -> Path:
        """Write the response table and the executable, return its path.

        A path missing from ``responses`` gets an echo reply with one record.
        A dict reply ``{"lines": [...], "exit": True}`` stops the engine
        after writing its lines. ``stderr_before_reply`` characters are
        written to stderr ahead of every reply.
        """
        self.script_path.write_text(
            json.dumps(
                {
                    "responses": responses or {},
                    "exit_code": exit_code,
                    "stderr": stderr,
                    "stderr_before_reply": stderr_before_reply,
                }
            ),
            encoding="utf-8",
        )
        self.executable.write_text(
            FAKE_ENGINE_SOURCE.format(
                python=sys.executable,
                script_path=str(self.script_path),
                requests_path=str(self.requests_path),
            ),
            encoding="utf-8",
        )
        mode = os.stat(self.executable).st_mode
        os.chmod(self.executable, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return self.executable

    @property
    def raw_requests(self) -> bytes:
        if not self.requests_path.exists():
            return b""
        return self.requests_path.read_bytes()


@pytest.fixture
def fake_engine(tmp_path: Path) -> FakeEngine:
    """Fake annotation engine living in a fresh temporary directory."""
    if sys.platform == "win32":
        pytest.skip("fake engine relies on a shebang line")
    engine_dir = tmp_path / "engine"
    engine_dir.mkdir()
    return FakeEngine(engine_dir)


@pytest.fixture
def source_file(tmp_path: Path):
    """Factory writing a source file and returning its absolute path."""

    def _make(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path.resolve()

    return _make
