"""
Blame session driver.

Runs one engine process over an ordered batch of files. Each file's request
and response complete before the next request is written; a fatal error
anywhere ends the session, and the channel is released before the error
reaches the caller.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .channel import DEFAULT_ENCODING, DEFAULT_SHUTDOWN_TIMEOUT, ProcessChannel
from .dates import TIMESTAMP_PATTERN
from .exceptions import ChildProcessFailure, ProtocolMismatch
from .models import FileResult, InputFile
from .output import BlameOutput, CollectingOutput
from .protocol import RequestEncoder, ResponseDecoder

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Lifecycle of a blame session."""

    IDLE = "idle"
    RUNNING = "running"
    CLOSED = "closed"


class BlameSession:
    """Single-use driver for one annotation engine process."""

    def __init__(
        self,
        executable: Union[str, Path],
        encoding: str = DEFAULT_ENCODING,
        date_format: str = TIMESTAMP_PATTERN,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
    ):
        self.executable = str(executable)
        self.encoding = encoding
        self.date_format = date_format
        self.shutdown_timeout = shutdown_timeout
        self.state = SessionState.IDLE
        self.channel: ProcessChannel = ProcessChannel(
            self.executable, encoding=encoding, shutdown_timeout=shutdown_timeout
        )

    def blame(self, files: Iterable[InputFile], output: BlameOutput) -> int:
        """Annotate every file and hand each result to the output.

        Args:
            files: Files to annotate, in the order they are requested
            output: Sink receiving each file's records

        Returns:
            Number of files handed to the output

        Raises:
            LaunchFailure: If the engine cannot be started
            ProtocolMismatch: If the engine's output is out of step
            NoBlameInfo: If a file has a line without history
            ChildProcessFailure: If the engine exits with a nonzero status,
                including when it dies before the last file
        """
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"Blame session is {self.state.value}, not idle")

        annotated = 0
        try:
            self.channel.open()
            self.state = SessionState.RUNNING
            encoder = RequestEncoder(self.channel.stdin)
            decoder = ResponseDecoder(self.channel.stdout, self.date_format)

            for input_file in files:
                try:
                    encoder.send(input_file.absolute_path)
                except OSError as e:
                    self._check_exit_code(self._exit_code_after(e), cause=e)
                    logger.debug(
                        f"TFS blame command exited before {input_file.absolute_path}"
                    )
                    break

                try:
                    records = decoder.receive(
                        input_file.absolute_path,
                        input_file.lines,
                        display_path=input_file.display_path,
                    )
                except ProtocolMismatch as e:
                    if e.actual is None:
                        # Output ended where a path was expected: report a
                        # crashed engine by its exit status
                        exit_code = self.channel.wait_for_exit(self.shutdown_timeout)
                        if exit_code:
                            self._check_exit_code(exit_code, cause=e)
                    raise
                if records is None:
                    logger.debug(
                        f"TFS blame command ended its output after {annotated} files"
                    )
                    break
                output.blame_result(input_file, records)
                annotated += 1

            try:
                exit_code = self.channel.finish()
            except OSError as e:
                exit_code = self._exit_code_after(e)
            self._check_exit_code(exit_code)
        finally:
            self.channel.close()
            self.state = SessionState.CLOSED

        logger.info(f"Blamed {annotated} files with {self.executable}")
        return annotated

    def _exit_code_after(self, error: OSError) -> int:
        """Exit code of an engine that stopped reading its input.

        Raises:
            ProtocolMismatch: If the engine is still running
        """
        exit_code = self.channel.wait_for_exit(self.shutdown_timeout)
        if exit_code is None:
            raise ProtocolMismatch(
                f"TFS blame command {self.executable} stopped reading requests: {error}"
            ) from error
        return exit_code

    def _check_exit_code(
        self, exit_code: int, cause: Optional[BaseException] = None
    ) -> None:
        if exit_code != 0:
            raise ChildProcessFailure(
                self.executable, exit_code, self.channel.read_stderr()
            ) from cause

    def cancel(self) -> None:
        """Kill the engine. The session cannot be used afterwards."""
        self.channel.terminate()
        self.state = SessionState.CLOSED


def blame_files(
    executable: Union[str, Path], files: Iterable[InputFile], **kwargs
) -> List[FileResult]:
    """Run one session over the files and return the collected results."""
    output = CollectingOutput()
    BlameSession(executable, **kwargs).blame(files, output)
    return output.results
