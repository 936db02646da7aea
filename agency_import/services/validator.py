from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping, Sequence
from datetime import date
from functools import lru_cache
from typing import Any
from urllib.parse import urlparse

from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError

from ..contracts import load_schema
from ..models.raw_row import RawRow
from ..models.reference import ReferenceData, normalize_name
from ..models.validation import PreviewResult, RowValidationResult
from ..spreadsheet.reader import (
    BOOLEAN_COLUMNS,
    EXPECTED_COLUMNS,
    LIST_COLUMNS,
    cell_text,
    parse_boolean,
    split_list,
)

"""Row Validator.

Checks every decoded row against the agency row contract
(contracts/agency_row.schema.json) plus the checks a JSON schema cannot
express: URL host, founded-year range, duplicates inside the upload, and
reference data lookups.

All errors of a row are collected (never first-only). Validation itself does
not raise: a row that blows up is reported as invalid with a single error.
"""

__all__ = [
    "MIN_FOUNDED_YEAR",
    "coerce_fields",
    "validate_rows",
]

logger = logging.getLogger(__name__)

MIN_FOUNDED_YEAR = 1800
COMPANY_SIZES = ("Small", "Medium", "Large", "Enterprise")
EMPLOYEE_COUNTS = ("1-10", "11-50", "51-100", "101-200", "201-500", "501-1000", "1001+")

UNEXPECTED_ERROR = "Row could not be validated"
EXISTING_NAME_WARNING = "Agency with this name already exists and will be skipped on import"

_MESSAGES: dict[tuple[str, str], str] = {
    ("name", "required"): "Name is required",
    ("name", "minLength"): "Name must be at least 2 characters",
    ("name", "maxLength"): "Name must be less than 200 characters",
    ("description", "maxLength"): "Description must be less than 5000 characters",
    ("website", "pattern"): "Website must start with http:// or https://",
    ("phone", "pattern"): "Phone must be in E.164 format (e.g., +12345678900)",
    ("email", "pattern"): "Email must be a valid email address",
    ("headquarters", "maxLength"): "Headquarters must be less than 200 characters",
    ("founded_year", "pattern"): "Founded year must be a valid 4-digit year",
    ("employee_count", "enum"): f"Employee count must be one of: {', '.join(EMPLOYEE_COUNTS)}",
    ("company_size", "enum"): f"Company size must be one of: {', '.join(COMPANY_SIZES)}",
    ("offers_per_diem", "type"): "Offers per diem must be yes/no or true/false",
    ("is_union", "type"): "Is union must be yes/no or true/false",
    ("trades", "type"): "Trades must be a list of trade names",
    ("regions", "type"): "Regions must be a list of region codes or names",
}


@lru_cache(maxsize=1)
def _row_validator() -> Draft7Validator:
    schema = load_schema("agency_row")
    Draft7Validator.check_schema(schema)
    return Draft7Validator(schema)


def _label(column: str) -> str:
    return column.replace("_", " ").capitalize()


def _coerce_text(column: str, value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value  # wrong shape, left for the schema to reject
    text = cell_text(value)
    if text is None:
        return None
    if column == "company_size":
        for size in COMPANY_SIZES:
            if size.lower() == text.lower():
                return size
    return text


def _coerce_list(value: Any, delimiter: str) -> Any:
    if isinstance(value, str):
        return split_list(value, delimiter)
    if isinstance(value, (list, tuple)):
        items = [cell_text(v) for v in value]
        return [i for i in items if i is not None]
    return value


def _coerce_boolean(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    text = cell_text(value)
    if text is None:
        return None
    return parse_boolean(text)


def coerce_fields(fields: Mapping[str, Any], *, list_delimiter: str = ",") -> dict[str, Any]:
    """Bring a raw row (decoder output or JSON from a client) to contract shape.

    Unknown keys are dropped and blank values become absent. Values that
    cannot be coerced are kept as-is so the schema reports them.
    """
    out: dict[str, Any] = {}
    for column in EXPECTED_COLUMNS:
        if column not in fields:
            continue
        value = fields[column]
        if column in BOOLEAN_COLUMNS:
            coerced = _coerce_boolean(value)
        elif column in LIST_COLUMNS:
            coerced = _coerce_list(value, list_delimiter)
        else:
            coerced = _coerce_text(column, value)
        if coerced is None or coerced == []:
            continue
        out[column] = coerced
    return out


def _row_data(candidate: Mapping[str, Any]) -> dict[str, Any]:
    """Fully populated row payload: absent strings -> None, booleans -> False, lists -> []."""
    data: dict[str, Any] = {}
    for column in EXPECTED_COLUMNS:
        value = candidate.get(column)
        if column in BOOLEAN_COLUMNS:
            data[column] = value if isinstance(value, bool) else False
        elif column in LIST_COLUMNS:
            data[column] = list(value) if isinstance(value, list) else []
        else:
            data[column] = value if isinstance(value, str) else None
    return data


def _error_column(error: ValidationError) -> str:
    if error.path:
        return str(error.path[0])
    return ""


def _schema_messages(candidate: Mapping[str, Any]) -> list[str]:
    order = {c: i for i, c in enumerate(EXPECTED_COLUMNS)}
    messages: list[str] = []
    errors = sorted(
        _row_validator().iter_errors(candidate),
        key=lambda e: order.get(_error_column(e), len(order)),
    )
    for error in errors:
        if error.validator == "required":
            missing = [c for c in error.validator_value if c not in candidate]
            columns = missing or [""]
        else:
            columns = [_error_column(error)]
        for column in columns:
            message = _MESSAGES.get((column, str(error.validator)))
            if message is None:
                message = f"{_label(column)}: {error.message}" if column else error.message
            if message not in messages:
                messages.append(message)
    return messages


def _semantic_messages(candidate: Mapping[str, Any], current_year: int) -> list[str]:
    messages: list[str] = []
    website = candidate.get("website")
    if isinstance(website, str) and website.lower().startswith(("http://", "https://")):
        parsed = urlparse(website)
        if not parsed.netloc or any(ch.isspace() for ch in website):
            messages.append("Website must be a valid URL")
    year = candidate.get("founded_year")
    if isinstance(year, str) and len(year) == 4 and year.isdigit():
        if not MIN_FOUNDED_YEAR <= int(year) <= current_year:
            messages.append(f"Founded year must be between {MIN_FOUNDED_YEAR} and {current_year}")
    return messages


def _reference_warnings(candidate: Mapping[str, Any], reference: ReferenceData) -> list[str]:
    warnings: list[str] = []
    name = candidate.get("name")
    if isinstance(name, str) and reference.has_agency(name):
        warnings.append(EXISTING_NAME_WARNING)
    trades = candidate.get("trades")
    if isinstance(trades, list):
        unknown = [t for t in trades if isinstance(t, str) and reference.trade_id(t) is None]
        if unknown:
            warnings.append(f"Unknown trades will be skipped: {', '.join(unknown)}")
    regions = candidate.get("regions")
    if isinstance(regions, list):
        unknown = [r for r in regions if isinstance(r, str) and reference.region_id(r) is None]
        if unknown:
            warnings.append(f"Unknown regions will be skipped: {', '.join(unknown)}")
    return warnings


def _validate_one(
    row: RawRow,
    candidate: dict[str, Any],
    reference: ReferenceData | None,
    current_year: int,
    duplicate: tuple[list[str], list[str]],
) -> RowValidationResult:
    errors = _schema_messages(candidate) + _semantic_messages(candidate, current_year)
    dup_errors, dup_warnings = duplicate
    errors.extend(dup_errors)
    warnings = list(dup_warnings)
    if reference is not None:
        warnings.extend(_reference_warnings(candidate, reference))
    return RowValidationResult(
        row_number=row.row_number,
        errors=errors,
        warnings=warnings,
        data=_row_data(candidate),
    )


def _duplicate_findings(rows: Sequence[RawRow], candidates: Sequence[dict[str, Any] | None]) -> list[tuple[list[str], list[str]]]:
    """Attribute in-upload name duplicates to every row involved.

    The first occurrence gets a warning listing the later rows; every later
    occurrence gets a blocking error pointing at the first.
    """
    positions: dict[str, list[int]] = defaultdict(list)
    for index, candidate in enumerate(candidates):
        name = candidate.get("name") if candidate else None
        if isinstance(name, str) and name:
            positions[normalize_name(name)].append(index)

    findings: list[tuple[list[str], list[str]]] = [([], []) for _ in rows]
    for indexes in positions.values():
        if len(indexes) < 2:
            continue
        first, *later = indexes
        first_row = rows[first].row_number
        others = ", ".join(str(rows[i].row_number) for i in later)
        findings[first][1].append(
            f"Name also appears in row(s) {others}; only this row will be imported"
        )
        for i in later:
            findings[i][0].append(f"Duplicate name in upload (first appears in row {first_row})")
    return findings


def validate_rows(
    rows: Sequence[RawRow],
    reference: ReferenceData | None = None,
    *,
    current_year: int | None = None,
    list_delimiter: str = ",",
) -> PreviewResult:
    """Validate a batch of decoded rows.

    Args:
        rows: decoded rows in file order
        reference: existing agency names, trades and regions. When None the
            reference-data warnings are not produced.
        current_year: upper bound for founded_year (defaults to today)
        list_delimiter: separator used when list columns arrive as plain text

    Returns:
        PreviewResult with one RowValidationResult per input row, same order.
    """
    year = current_year if current_year is not None else date.today().year

    candidates: list[dict[str, Any] | None] = []
    for row in rows:
        try:
            candidates.append(coerce_fields(row.fields, list_delimiter=list_delimiter))
        except Exception:
            logger.exception("row %s: coercion failed", row.row_number)
            candidates.append(None)

    duplicates = _duplicate_findings(rows, candidates)
    results: list[RowValidationResult] = []
    for row, candidate, duplicate in zip(rows, candidates, duplicates):
        if candidate is None:
            results.append(RowValidationResult(row_number=row.row_number, errors=[UNEXPECTED_ERROR]))
            continue
        try:
            results.append(_validate_one(row, candidate, reference, year, duplicate))
        except Exception:
            logger.exception("row %s: validation failed", row.row_number)
            results.append(RowValidationResult(row_number=row.row_number, errors=[UNEXPECTED_ERROR]))

    preview = PreviewResult.from_results(results)
    logger.info(
        "validated rows=%d valid=%d invalid=%d with_warnings=%d",
        preview.summary.total,
        preview.summary.valid,
        preview.summary.invalid,
        preview.summary.with_warnings,
    )
    return preview
