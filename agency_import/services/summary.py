from __future__ import annotations

from ..models.import_result import ImportSummary
from ..models.validation import ValidationSummary

"""SUMMARY line rendering.

Formats (one line, space separated key=value pairs):
    SUMMARY total={n} valid={n} invalid={n} with_warnings={n}
    SUMMARY total={n} created={n} skipped={n} failed={n}
"""

__all__ = [
    "render_preview_summary",
    "render_import_summary",
]


def render_preview_summary(summary: ValidationSummary) -> str:
    """
    >>> render_preview_summary(ValidationSummary(total=3, valid=2, invalid=1, with_warnings=1))
    'SUMMARY total=3 valid=2 invalid=1 with_warnings=1'
    """
    return (
        f"SUMMARY total={summary.total} "
        f"valid={summary.valid} "
        f"invalid={summary.invalid} "
        f"with_warnings={summary.with_warnings}"
    )


def render_import_summary(summary: ImportSummary) -> str:
    return (
        f"SUMMARY total={summary.total} "
        f"created={summary.created} "
        f"skipped={summary.skipped} "
        f"failed={summary.failed}"
    )
