"""Result sinks for blame sessions."""

from typing import List, Protocol, Sequence

from .models import AnnotationRecord, FileResult, InputFile


class BlameOutput(Protocol):
    """Receives the records of each annotated file, in input order."""

    def blame_result(
        self, input_file: InputFile, records: Sequence[AnnotationRecord]
    ) -> None:
        """Accept the records for one file.

        Args:
            input_file: The file that was annotated
            records: One record per line of the file
        """
        ...


class CollectingOutput:
    """Keeps every file result in memory."""

    def __init__(self):
        self.results: List[FileResult] = []

    def blame_result(
        self, input_file: InputFile, records: Sequence[AnnotationRecord]
    ) -> None:
        self.results.append(FileResult(input_file=input_file, records=tuple(records)))
