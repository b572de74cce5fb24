"""Error log for failed blame sessions.

Appends one JSON entry per failure, with stack trace and session context, to
a timestamped file under the project's ``.tfs-blame`` directory.
"""

import json
import os
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional


class ExceptionLogger:
    """Writes failure entries to ``error_<timestamp>_<pid>.log``."""

    def __init__(self, log_file_path: Path):
        self.log_file_path = log_file_path

    @classmethod
    def for_project(cls, project_root: Path) -> "ExceptionLogger":
        """Create a logger whose file lives in ``<project_root>/.tfs-blame``.

        The file is created on the first logged exception.
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_dir = project_root / ".tfs-blame"
        return cls(log_dir / f"error_{timestamp}_{os.getpid()}.log")

    def log_exception(
        self, exception: BaseException, context: Optional[Dict[str, Any]] = None
    ) -> None:
        """Append an exception with its traceback and context.

        Args:
            exception: The exception to log
            context: Additional context data to include in the entry
        """
        log_entry = {
            "timestamp": datetime.now().isoformat(),
            "exception_type": type(exception).__name__,
            "exception_message": str(exception),
            "stack_trace": "".join(
                traceback.format_exception(
                    type(exception), exception, exception.__traceback__
                )
            ),
            "context": context or {},
        }

        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.log_file_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(log_entry, indent=2, default=str))
            f.write("\n---\n")
