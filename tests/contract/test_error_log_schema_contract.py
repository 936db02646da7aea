from __future__ import annotations

import json
from pathlib import Path

import jsonschema
import pytest
from conftest import FakeRepository

from agency_import.contracts import load_schema
from agency_import.logging.error_log import ErrorLogBuffer
from agency_import.models.error_record import UNKNOWN_ROW, ErrorRecord
from agency_import.models.raw_row import RawRow
from agency_import.services.committer import commit_rows


@pytest.fixture(scope="module")
def schema() -> dict:
    return load_schema("error_log")


def _lines(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_records_written_by_commit_match_schema(schema, tmp_path: Path):
    repo = FakeRepository()
    repo.unavailable_after = 1
    buf = ErrorLogBuffer(tmp_path, source="agencies.xlsx")
    rows = [RawRow(2, {"name": "Alpha"}), RawRow(3, {"name": "Gamma"}), RawRow(4, {"name": "Delta"})]
    commit_rows(repo, rows, error_log=buf)
    path = buf.flush()
    assert path is not None
    records = _lines(path)
    assert records
    for rec in records:
        jsonschema.validate(rec, schema)
    assert records[-1]["row"] == UNKNOWN_ROW


def test_unknown_row_record_is_valid(schema):
    rec = json.loads(ErrorRecord.create("api", "decode", UNKNOWN_ROW, "DECODE_ERROR", "File is empty").to_json_line())
    jsonschema.validate(rec, schema)


@pytest.mark.parametrize(
    "patch",
    [
        {"row": -2},
        {"stage": "upload"},
        {"error_type": "lower_case"},
        {"timestamp": "2025-01-01T00:00:00+00:00"},
        {"extra": "nope"},
    ],
)
def test_schema_rejects_bad_records(schema, patch):
    rec = json.loads(ErrorRecord.create("api", "commit", 2, "DATABASE_ERROR", "x").to_json_line())
    rec.update(patch)
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(rec, schema)
