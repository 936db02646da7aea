from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

"""Commit outcome models for the Import Committer.

Each submitted row ends in exactly one terminal ImportStatus. The pending
state exists only while the committer is working on the row and is never
reported.
"""

__all__ = [
    "ImportStatus",
    "ImportRowOutcome",
    "ImportSummary",
    "BulkImportResponse",
]


class ImportStatus(Enum):
    """Terminal per-row commit state.

    - CREATED: a new agency record was persisted
    - SKIPPED: an active agency with the same identity already exists
    - FAILED: persistence was attempted and rejected, or could not be attempted
    """
    CREATED = "created"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ImportRowOutcome:
    row_number: int
    agency_name: str
    status: ImportStatus
    agency_id: str | None = None  # only for CREATED
    reason: str | None = None  # only for SKIPPED / FAILED, operator-safe text

    @classmethod
    def created(cls, row_number: int, agency_name: str, agency_id: str) -> ImportRowOutcome:
        return cls(row_number, agency_name, ImportStatus.CREATED, agency_id=agency_id)

    @classmethod
    def skipped(cls, row_number: int, agency_name: str, reason: str) -> ImportRowOutcome:
        return cls(row_number, agency_name, ImportStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, row_number: int, agency_name: str, reason: str) -> ImportRowOutcome:
        return cls(row_number, agency_name, ImportStatus.FAILED, reason=reason)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "rowNumber": self.row_number,
            "agencyName": self.agency_name,
            "status": self.status.value,
        }
        if self.agency_id is not None:
            data["agencyId"] = self.agency_id
        if self.reason is not None:
            data["reason"] = self.reason
        return data


@dataclass(frozen=True)
class ImportSummary:
    total: int
    created: int
    skipped: int
    failed: int

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "created": self.created,
            "skipped": self.skipped,
            "failed": self.failed,
        }


@dataclass(frozen=True)
class BulkImportResponse:
    """Ordered outcomes (same order as submitted) plus aggregate counts."""
    results: list[ImportRowOutcome]
    summary: ImportSummary

    @classmethod
    def from_outcomes(cls, outcomes: Sequence[ImportRowOutcome]) -> BulkImportResponse:
        def count(status: ImportStatus) -> int:
            return sum(1 for o in outcomes if o.status is status)

        return cls(
            results=list(outcomes),
            summary=ImportSummary(
                total=len(outcomes),
                created=count(ImportStatus.CREATED),
                skipped=count(ImportStatus.SKIPPED),
                failed=count(ImportStatus.FAILED),
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [o.to_dict() for o in self.results],
            "summary": self.summary.to_dict(),
        }
