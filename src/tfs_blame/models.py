"""Data models exchanged with the annotation engine and its collaborators."""

import datetime
from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class AnnotationRecord:
    """Attribution of a single line of a file."""

    revision: str
    author: str
    date: Optional[datetime.date] = None


@dataclass(frozen=True)
class InputFile:
    """A file to annotate.

    ``lines`` is the total line count of the file, including a trailing empty
    line after the final newline.
    """

    absolute_path: str
    lines: int
    relative_path: Optional[str] = None

    @property
    def display_path(self) -> str:
        """Path used in messages, relative when known."""
        return self.relative_path or self.absolute_path


@dataclass(frozen=True)
class FileResult:
    """Annotation records for one file, in line order."""

    input_file: InputFile
    records: Tuple[AnnotationRecord, ...] = field(default_factory=tuple)
