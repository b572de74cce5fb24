"""
Wire protocol spoken with the annotation engine.

Request, one per file::

    <absolute-file-path>\\r\\n

Response, one per request::

    <absolute-file-path>
    <line-count>
    <revision> <author> <MM/dd/yyyy>     (line-count times)

A response line starting with ``local`` or ``unknow`` means the engine has no
history for that line.
"""

import logging
import re
from typing import List, Optional, TextIO

from .dates import TIMESTAMP_PATTERN, parse_date_or_none
from .exceptions import MalformedLine, NoBlameInfo, ProtocolMismatch
from .models import AnnotationRecord

logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\r\n"
LINE_PATTERN = re.compile(r"([^ ]+) +([^ ]+) +([^ ]+)")
LINE_COUNT_PATTERN = re.compile(r"[0-9]+")
NO_BLAME_PREFIXES = ("local", "unknow")


def encode_request(path: str) -> str:
    """Encode the request line for one file."""
    return f"{path}{LINE_TERMINATOR}"


def is_no_blame_line(line: str) -> bool:
    """Whether the engine marked this line as having no history."""
    return line.startswith(NO_BLAME_PREFIXES)


def parse_annotation_line(
    line: str, date_format: str = TIMESTAMP_PATTERN
) -> AnnotationRecord:
    """Parse one ``<revision> <author> <date>`` response line.

    The first three space-separated tokens found in the line are used, each
    trimmed. An unparseable date leaves the record's date empty.

    Args:
        line: Response line without its terminator
        date_format: ``strptime`` pattern for the date token

    Returns:
        The decoded record

    Raises:
        MalformedLine: If the line does not hold three tokens
    """
    match = LINE_PATTERN.search(line)
    if not match:
        raise MalformedLine(line)

    revision = match.group(1).strip()
    author = match.group(2).strip()
    date_text = match.group(3).strip()

    return AnnotationRecord(
        revision=revision,
        author=author,
        date=parse_date_or_none(date_text, date_format),
    )


class RequestEncoder:
    """Writes one request per file and flushes it immediately."""

    def __init__(self, sink: TextIO):
        self.sink = sink

    def send(self, path: str) -> None:
        logger.debug(f"Requesting blame for {path}")
        self.sink.write(encode_request(path))
        self.sink.flush()


class ResponseDecoder:
    """Reads the engine's response for one file at a time."""

    def __init__(self, source: TextIO, date_format: str = TIMESTAMP_PATTERN):
        self.source = source
        self.date_format = date_format

    def _read_line(self) -> Optional[str]:
        line = self.source.readline()
        if not line:
            return None
        return line.rstrip("\r\n")

    def receive(
        self,
        expected_path: str,
        expected_line_count: int,
        display_path: Optional[str] = None,
    ) -> Optional[List[AnnotationRecord]]:
        """Read and decode the response for one file.

        Args:
            expected_path: Path sent in the request, must be echoed back
            expected_line_count: Total line count of the file
            display_path: Path used in error messages, defaults to expected_path

        Returns:
            Records in line order, or None when the engine ended the session
            before sending a line count

        Raises:
            ProtocolMismatch: If the response does not belong to the request
                or is cut short
            NoBlameInfo: If the engine has no history for one of the lines
        """
        path = self._read_line()
        if path != expected_path:
            raise ProtocolMismatch(
                f"Expected the file paths to match: {expected_path} and {path}",
                expected=expected_path,
                actual=path,
            )

        count_text = self._read_line()
        if count_text is None:
            return None
        if not LINE_COUNT_PATTERN.fullmatch(count_text):
            raise ProtocolMismatch(
                f"Expected a line count for {expected_path}, got {count_text!r}",
                expected="<line-count>",
                actual=count_text,
            )
        count = int(count_text, 10)

        records: List[AnnotationRecord] = []
        for index in range(1, count + 1):
            line = self._read_line()
            if line is None:
                raise ProtocolMismatch(
                    f"Output ended after {index - 1} of {count} lines for {expected_path}",
                    expected=str(count),
                    actual=str(index - 1),
                )

            if is_no_blame_line(line):
                raise NoBlameInfo(display_path or expected_path, index, line)

            try:
                records.append(parse_annotation_line(line, self.date_format))
            except MalformedLine as e:
                logger.debug(f"Skipping line {index} of {expected_path}: {e}")

        # The engine reports nothing for the empty line after a final newline
        if records and len(records) == expected_line_count - 1:
            records.append(records[-1])

        return records
