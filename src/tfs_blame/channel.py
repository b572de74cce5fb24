"""
Child process channel for the annotation engine.

Owns the engine process and its three standard streams. The engine's stderr is
spooled to a temporary file so a noisy engine never blocks on a full pipe
while the driver waits on stdout. Requests are written
to stdin as text with no newline translation so the wire terminator is the
same on every platform; responses are read from stdout as line-buffered text.
Every stream is released on every exit path, and a failure releasing one
stream never prevents the release of the others.
"""

import io
import logging
import subprocess
import tempfile
from pathlib import Path
from typing import IO, Optional, Union

from .exceptions import LaunchFailure

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"
DEFAULT_SHUTDOWN_TIMEOUT = 5.0
STDERR_TAIL_CHARS = 4000


def close_quietly(stream: Optional[IO], name: str) -> None:
    """Close a stream, logging instead of raising on failure.

    Args:
        stream: Stream to close, ignored when None
        name: Stream name used in the log message
    """
    if stream is None:
        return
    try:
        stream.close()
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to close {name} of the TFS blame command: {e}")


class ProcessChannel:
    """Bidirectional line channel over the stdin/stdout of one engine process.

    A channel is opened once and closed once. After ``terminate()`` it must be
    discarded.
    """

    def __init__(
        self,
        executable: Union[str, Path],
        encoding: str = DEFAULT_ENCODING,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
    ):
        self.executable = str(executable)
        self.encoding = encoding
        self.shutdown_timeout = shutdown_timeout
        self.process: Optional[subprocess.Popen] = None
        self.stdin: Optional[io.TextIOWrapper] = None
        self.stdout: Optional[io.TextIOWrapper] = None
        self.stderr_file: Optional[IO[bytes]] = None
        self._closed = False

    def open(self) -> "ProcessChannel":
        """Spawn the engine with no arguments and wrap its streams.

        Returns:
            This channel, for chaining

        Raises:
            LaunchFailure: If the process cannot be started
            RuntimeError: If the channel was already opened
        """
        if self.process is not None or self._closed:
            raise RuntimeError("Channel has already been opened")

        logger.debug(f"Executing the TFS blame command: {self.executable}")
        self.stderr_file = tempfile.TemporaryFile()
        try:
            self.process = subprocess.Popen(
                [self.executable],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=self.stderr_file,
            )
        except OSError as e:
            close_quietly(self.stderr_file, "stderr")
            self.stderr_file = None
            raise LaunchFailure(
                f"Unable to start the TFS blame command {self.executable}",
                str(e),
                os_error=e,
            ) from e

        # newline="" keeps "\r\n" from being rewritten on Windows
        self.stdin = io.TextIOWrapper(
            self.process.stdin,
            encoding=self.encoding,
            newline="",
            write_through=True,
        )
        self.stdout = io.TextIOWrapper(
            self.process.stdout,
            encoding=self.encoding,
            errors="replace",
        )
        return self

    @property
    def is_open(self) -> bool:
        return self.process is not None and not self._closed

    def finish(self) -> int:
        """Close the input side and wait for the engine to exit.

        Returns:
            The engine's exit code
        """
        if self.process is None:
            raise RuntimeError("Channel is not open")
        if self.stdin is not None and not self.stdin.closed:
            self.stdin.close()
        return self.process.wait()

    def wait_for_exit(self, timeout: Optional[float] = None) -> Optional[int]:
        """Wait for the engine to exit.

        Returns:
            The exit code, or None if the engine is still running after
            ``timeout`` seconds
        """
        if self.process is None:
            raise RuntimeError("Channel is not open")
        try:
            return self.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def read_stderr(self, limit: int = STDERR_TAIL_CHARS) -> str:
        """Return the last ``limit`` characters the engine wrote on stderr."""
        if self.stderr_file is None:
            return ""
        try:
            self.stderr_file.seek(0)
            data = self.stderr_file.read()
        except (OSError, ValueError) as e:
            logger.debug(f"Unable to read stderr of the TFS blame command: {e}")
            return ""
        return data.decode(self.encoding, errors="replace")[-limit:]

    def terminate(self) -> None:
        """Kill the engine and release the channel."""
        if self.process is not None and self.process.poll() is None:
            logger.debug(f"Killing the TFS blame command: {self.executable}")
            self.process.kill()
        self.close()

    def close(self) -> None:
        """Release stdin, stdout and stderr, then reap the process.

        Safe to call more than once. Errors are logged, never raised.
        """
        if self._closed:
            return
        self._closed = True
        if self.process is None:
            return

        close_quietly(self.stdin, "stdin")
        close_quietly(self.stdout, "stdout")

        if self.process.poll() is None:
            try:
                self.process.wait(timeout=self.shutdown_timeout)
            except subprocess.TimeoutExpired:
                logger.warning(
                    f"TFS blame command {self.executable} did not exit within "
                    f"{self.shutdown_timeout}s, killing it"
                )
                self.process.kill()
                self.process.wait()

        close_quietly(self.stderr_file, "stderr")

    def __enter__(self) -> "ProcessChannel":
        if self.process is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
