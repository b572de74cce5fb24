"""Exception classes for blame sessions."""

from typing import Optional


class BlameError(Exception):
    """Base exception for blame session errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self):
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class LaunchFailure(BlameError):
    """Exception raised when the annotation engine cannot be started."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        os_error: Optional[OSError] = None,
    ):
        super().__init__(message, details)
        self.os_error = os_error


class ProtocolMismatch(BlameError):
    """Exception raised when the engine's response is out of step with the request."""

    def __init__(
        self, message: str, expected: Optional[str] = None, actual: Optional[str] = None
    ):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class NoBlameInfo(BlameError):
    """Exception raised when the engine has no history for a line of a file."""

    def __init__(self, path: str, line_index: int, line: str):
        super().__init__(
            f"Unable to blame file {path}. No blame info at line {line_index}. "
            "Is file committed?",
            f"[{line}]",
        )
        self.path = path
        self.line_index = line_index
        self.line = line


class ChildProcessFailure(BlameError):
    """Exception raised when the engine exits with a nonzero status."""

    def __init__(self, executable: str, exit_code: int, stderr: Optional[str] = None):
        super().__init__(
            f"The TFS blame command {executable} failed with exit code {exit_code}",
            stderr.strip() if stderr and stderr.strip() else None,
        )
        self.executable = executable
        self.exit_code = exit_code


class DateParseFailure(BlameError):
    """Exception raised when a record's date cannot be parsed.

    Recoverable: the decoder keeps the record with no date.
    """

    def __init__(self, value: str, pattern: str, details: Optional[str] = None):
        super().__init__(
            f"Unable to parse date {value!r} with pattern {pattern!r}", details
        )
        self.value = value
        self.pattern = pattern


class MalformedLine(BlameError):
    """Exception raised when a response line is not a revision/author/date triple.

    Recoverable: the decoder drops the line.
    """

    def __init__(self, line: str):
        super().__init__(f"Malformed annotation line: {line!r}")
        self.line = line
