from __future__ import annotations

from agency_import.models.import_result import ImportSummary
from agency_import.models.validation import ValidationSummary
from agency_import.services.summary import render_import_summary, render_preview_summary


def test_render_preview_summary():
    line = render_preview_summary(ValidationSummary(total=5, valid=3, invalid=2, with_warnings=1))
    assert line == "SUMMARY total=5 valid=3 invalid=2 with_warnings=1"


def test_render_import_summary():
    line = render_import_summary(ImportSummary(total=4, created=2, skipped=1, failed=1))
    assert line == "SUMMARY total=4 created=2 skipped=1 failed=1"


def test_render_import_summary_zero():
    line = render_import_summary(ImportSummary(total=0, created=0, skipped=0, failed=0))
    assert line == "SUMMARY total=0 created=0 skipped=0 failed=0"
