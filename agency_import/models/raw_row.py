from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""Decoded spreadsheet rows and decode outcome models.

RawRow is the unit that flows from the File Decoder into the Row Validator and,
once an operator confirms it, into the Import Committer. The row_number always
refers to the row in the uploaded file (header = row 1, first data row = 2) so
every downstream message can point the operator back to their spreadsheet.
"""

__all__ = [
    "IssueKind",
    "DecodeIssue",
    "RawRow",
    "DecodeResult",
]


class IssueKind(Enum):
    """Where a decode problem was found.

    - FILE: the container itself (unreadable, wrong format, too large, empty)
    - HEADER: the header row (missing required column, unknown columns)
    - ROW: a single data row (field count mismatch)
    """
    FILE = "file"
    HEADER = "header"
    ROW = "row"


@dataclass(frozen=True)
class DecodeIssue:
    message: str
    kind: IssueKind
    row: int | None = None  # None when the row cannot be determined

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"message": self.message, "type": self.kind.value}
        if self.row is not None:
            data["row"] = self.row
        return data


@dataclass(frozen=True)
class RawRow:
    """One spreadsheet row before validation.

    fields maps canonical column names to lightly decoded values: trimmed
    strings, booleans for yes/no columns and string lists for list columns.
    Nothing here is validated yet.
    """
    row_number: int  # 1-based, header row included
    fields: dict[str, Any]

    def get(self, column: str, default: Any = None) -> Any:
        return self.fields.get(column, default)

    def to_dict(self) -> dict[str, Any]:
        """Flat wire form: ``{"rowNumber": 2, "name": ..., ...}``."""
        return {"rowNumber": self.row_number, **self.fields}


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of decoding one uploaded file.

    success is True when the container parsed and at least one row decoded.
    Row-level problems are listed in errors without flipping success.
    """
    success: bool
    data: list[RawRow] = field(default_factory=list)
    errors: list[DecodeIssue] = field(default_factory=list)
    warnings: list[DecodeIssue] = field(default_factory=list)

    @classmethod
    def failed(cls, errors: list[DecodeIssue], warnings: list[DecodeIssue] | None = None) -> DecodeResult:
        return cls(success=False, data=[], errors=list(errors), warnings=list(warnings or []))

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "data": [r.to_dict() for r in self.data],
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }
