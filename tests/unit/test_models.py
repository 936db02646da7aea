from __future__ import annotations

from agency_import.models.import_result import BulkImportResponse, ImportRowOutcome
from agency_import.models.raw_row import DecodeIssue, DecodeResult, IssueKind, RawRow
from agency_import.models.reference import Operator, ReferenceData, normalize_name
from agency_import.models.validation import PreviewResult, RowValidationResult


def test_raw_row_wire_form():
    row = RawRow(row_number=2, fields={"name": "Acme", "trades": ["Welder"]})
    assert row.to_dict() == {"rowNumber": 2, "name": "Acme", "trades": ["Welder"]}
    assert row.get("email") is None


def test_decode_result_failed_and_issue_dict():
    issue = DecodeIssue("File is empty", IssueKind.FILE)
    result = DecodeResult.failed([issue])
    assert result.to_dict() == {
        "success": False,
        "data": [],
        "errors": [{"message": "File is empty", "type": "file"}],
        "warnings": [],
    }
    assert DecodeIssue("bad", IssueKind.ROW, row=4).to_dict()["row"] == 4


def test_row_validity_follows_errors():
    assert RowValidationResult(2, warnings=["w"]).valid is True
    assert RowValidationResult(3, errors=["e"]).valid is False


def test_preview_result_summary_and_valid_rows():
    preview = PreviewResult.from_results(
        [
            RowValidationResult(2),
            RowValidationResult(3, errors=["e"], warnings=["w"]),
            RowValidationResult(4, warnings=["w"]),
        ]
    )
    assert preview.summary.to_dict() == {"total": 3, "valid": 2, "invalid": 1, "withWarnings": 1}
    assert [r.row_number for r in preview.valid_rows] == [2, 4]
    assert preview.to_dict()["rows"][1]["valid"] is False


def test_bulk_import_response_counts_and_omits_empty_fields():
    response = BulkImportResponse.from_outcomes(
        [
            ImportRowOutcome.created(2, "Acme", "a1"),
            ImportRowOutcome.skipped(3, "Beta", "Agency with this name already exists"),
            ImportRowOutcome.failed(4, "Gamma", "Could not save agency"),
        ]
    )
    assert response.summary.to_dict() == {"total": 3, "created": 1, "skipped": 1, "failed": 1}
    created, skipped, _ = response.to_dict()["results"]
    assert created == {"rowNumber": 2, "agencyName": "Acme", "status": "created", "agencyId": "a1"}
    assert "agencyId" not in skipped


def test_reference_lookups():
    ref = ReferenceData.build(
        ["  Acme Staffing "],
        [("1", "HVAC Technician", "hvac-technician")],
        [("9", "Oklahoma", "OK")],
    )
    assert ref.has_agency("ACME STAFFING")
    assert ref.trade_id("hvac technician") == "1"
    assert ref.trade_id("hvac-technician") == "1"
    assert ref.region_id("ok") == "9"
    assert ref.region_id("Oklahoma") == "9"
    assert ref.region_id("Atlantis") is None
    assert normalize_name("  Mixed Case ") == "mixed case"


def test_operator_roles():
    assert Operator("1", "admin").is_admin
    assert not Operator("2", "user").is_admin
