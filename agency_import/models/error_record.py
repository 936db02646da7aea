from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the server-side error log.

Raw storage and driver messages never reach the operator; they are written
here instead. row=-1 marks problems that are not tied to a single row
(file-level or request-level).

The record keys are fixed by contracts/error_log.schema.json.
"""

__all__ = [
    "ErrorRecord",
    "UNKNOWN_ROW",
]

UNKNOWN_ROW = -1


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        source: Uploaded file name, or "api" when rows arrived as JSON
        stage: Pipeline stage (decode, validate, commit)
        row: Row number in the source file. -1 when unknown
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Raw error text (may contain driver details)
    """
    timestamp: str
    source: str
    stage: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(source: str, stage: str, row: int, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            source=source,
            stage=stage,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
