from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

"""Row validation result models.

A preview pass produces one RowValidationResult per decoded row plus a
ValidationSummary. Both are transient: they are returned to the operator for
review and never persisted.
"""

__all__ = [
    "RowValidationResult",
    "ValidationSummary",
    "PreviewResult",
]


@dataclass(frozen=True)
class RowValidationResult:
    """Validation outcome for a single row.

    valid is derived from errors so the two can never disagree. A row that only
    carries warnings is still valid.
    """
    row_number: int
    errors: list[str] = field(default_factory=list)  # blocking, in check order
    warnings: list[str] = field(default_factory=list)  # advisory only
    data: dict[str, Any] = field(default_factory=dict)  # fields coerced to the row contract

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "rowNumber": self.row_number,
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "data": dict(self.data),
        }


@dataclass(frozen=True)
class ValidationSummary:
    total: int
    valid: int
    invalid: int
    with_warnings: int  # valid rows with at least one warning

    @classmethod
    def from_results(cls, results: Sequence[RowValidationResult]) -> ValidationSummary:
        valid = sum(1 for r in results if r.valid)
        return cls(
            total=len(results),
            valid=valid,
            invalid=len(results) - valid,
            with_warnings=sum(1 for r in results if r.valid and r.warnings),
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "valid": self.valid,
            "invalid": self.invalid,
            "withWarnings": self.with_warnings,
        }


@dataclass(frozen=True)
class PreviewResult:
    rows: list[RowValidationResult]
    summary: ValidationSummary

    @classmethod
    def from_results(cls, results: Sequence[RowValidationResult]) -> PreviewResult:
        return cls(rows=list(results), summary=ValidationSummary.from_results(results))

    @property
    def valid_rows(self) -> list[RowValidationResult]:
        return [r for r in self.rows if r.valid]

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": [r.to_dict() for r in self.rows],
            "summary": self.summary.to_dict(),
        }
