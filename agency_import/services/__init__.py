"""Pipeline services: validation, commit, SUMMARY rendering, progress."""

from .committer import commit_rows, slugify
from .summary import render_import_summary, render_preview_summary
from .validator import coerce_fields, validate_rows

__all__ = [
    "coerce_fields",
    "commit_rows",
    "render_import_summary",
    "render_preview_summary",
    "slugify",
    "validate_rows",
]
