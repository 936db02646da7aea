from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""JSON Lines error log.

- fixed record schema (contracts/error_log.schema.json, no extra keys)
- one file per buffer: ``<dir>/errors-YYYYMMDD-HHMMSS.log`` (UTC), created on
  the first flush that has something to write
- raw driver / storage messages are kept here, never in operator responses
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. flush() appends them as JSON Lines."""

    def __init__(self, directory: Path | str = LOGS_DIR, *, source: str = "api") -> None:
        self.directory = Path(directory)
        self.source = source  # default source for record()
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self.directory.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self.directory / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def record(self, stage: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create and buffer a record for this buffer's source."""
        rec = ErrorRecord.create(self.source, stage, row, error_type, message)
        self._records.append(rec)
        return rec

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records. Returns the file path, or None when there was nothing to write."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
