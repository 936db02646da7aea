from __future__ import annotations

import csv
import io
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path, PurePath
from typing import Any

import pandas as pd
from openpyxl import load_workbook

from ..models.config_models import DEFAULT_LIST_DELIMITER, DEFAULT_MAX_FILE_BYTES
from ..models.raw_row import DecodeIssue, DecodeResult, IssueKind, RawRow

"""File Decoder: uploaded CSV / XLSX bytes -> RawRow sequence.

- Row 1 is the header, data starts at row 2. Row numbers are those an operator
  sees in a spreadsheet editor, blank rows included.
- The container either parses or it does not (success=False, data=[]).
- A malformed row is reported with its row number and left out of data;
  decoding carries on with the next row.
- Only light decoding happens here (trim, yes/no, list split). Semantic checks
  belong to services.validator.
"""

__all__ = [
    "EXPECTED_COLUMNS",
    "UnsupportedFormatError",
    "detect_format",
    "normalize_header",
    "cell_text",
    "parse_boolean",
    "split_list",
    "decode_file",
    "decode_csv",
    "decode_xlsx",
    "read_upload",
]

logger = logging.getLogger(__name__)

# Template column order
EXPECTED_COLUMNS: tuple[str, ...] = (
    "name",
    "description",
    "website",
    "phone",
    "email",
    "headquarters",
    "founded_year",
    "employee_count",
    "company_size",
    "offers_per_diem",
    "is_union",
    "trades",
    "regions",
)
REQUIRED_COLUMNS = frozenset({"name"})
BOOLEAN_COLUMNS = frozenset({"offers_per_diem", "is_union"})
LIST_COLUMNS = frozenset({"trades", "regions"})

TRUE_VALUES = frozenset({"true", "yes", "y", "1"})
FALSE_VALUES = frozenset({"false", "no", "n", "0"})

CSV_MIME_TYPES = frozenset({"text/csv", "application/csv", "text/x-csv"})
XLSX_MIME_TYPES = frozenset({"application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"})
# Browsers send these for .csv files often enough that the extension decides.
GENERIC_MIME_TYPES = frozenset(
    {"", "application/octet-stream", "binary/octet-stream", "text/plain", "application/vnd.ms-excel"}
)

# Placeholder row handed back to pandas for lines with too many fields.
_MALFORMED = "\x00malformed-row\x00"


class UnsupportedFormatError(Exception):
    """Raised when neither the MIME type nor the file extension is CSV or XLSX."""


@dataclass
class _Table:
    """Header + numbered records, before column mapping."""
    header: list[str]
    records: list[tuple[int, list[Any]]]
    errors: list[DecodeIssue] = field(default_factory=list)
    warnings: list[DecodeIssue] = field(default_factory=list)


def detect_format(filename: str | None, content_type: str | None) -> str:
    """Return ``"csv"`` or ``"xlsx"``.

    The MIME type wins when it is specific; an absent or generic one falls
    back to the filename extension.
    """
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime in CSV_MIME_TYPES:
        return "csv"
    if mime in XLSX_MIME_TYPES:
        return "xlsx"
    if mime not in GENERIC_MIME_TYPES:
        raise UnsupportedFormatError(f"Unsupported file type: {mime}. Please upload a .csv or .xlsx file.")
    suffix = PurePath(filename or "").suffix.lower()
    if suffix == ".csv":
        return "csv"
    if suffix == ".xlsx":
        return "xlsx"
    shown = suffix or "(none)"
    raise UnsupportedFormatError(f"Unsupported file type: {shown}. Please upload a .csv or .xlsx file.")


def normalize_header(header: Any) -> str:
    """``" Founded Year "`` -> ``"founded_year"``."""
    if header is None or (not isinstance(header, str) and pd.isna(header)):
        return ""
    return re.sub(r"\s+", "_", str(header).strip().lower())


def cell_text(value: Any) -> str | None:
    """Render one cell as trimmed text, None when blank."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if pd.isna(value):
            return None
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str) and pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def parse_boolean(text: str) -> bool | str:
    """yes/no style text -> bool. Unrecognised text is returned unchanged for the validator."""
    lowered = text.lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    return text


def split_list(text: str, delimiter: str) -> list[str]:
    return [item.strip() for item in text.split(delimiter) if item.strip()]


def _normalize_row(cells: dict[str, Any], row_number: int, delimiter: str) -> RawRow:
    fields: dict[str, Any] = {}
    for column, value in cells.items():
        text = cell_text(value)
        if text is None:
            continue
        if column in BOOLEAN_COLUMNS:
            fields[column] = parse_boolean(text)
        elif column in LIST_COLUMNS:
            items = split_list(text, delimiter)
            if items:
                fields[column] = items
        else:
            fields[column] = text
    return RawRow(row_number=row_number, fields=fields)


def _is_blank(cells: Sequence[Any]) -> bool:
    return all(cell_text(v) is None for v in cells)


def _file_error(message: str, warnings: list[DecodeIssue] | None = None) -> DecodeResult:
    return DecodeResult.failed([DecodeIssue(message, IssueKind.FILE)], warnings)


def _rows_from_table(table: _Table, delimiter: str) -> DecodeResult:
    """Map header columns, normalise every record and assemble the result."""
    errors = list(table.errors)
    warnings = list(table.warnings)
    columns = [normalize_header(h) for h in table.header]

    missing = sorted(REQUIRED_COLUMNS - set(columns))
    if missing:
        errors.append(DecodeIssue(f"Missing required column: {', '.join(missing)}", IssueKind.HEADER))
        return DecodeResult.failed(errors, warnings)

    unrecognized = [str(h).strip() for h, c in zip(table.header, columns) if c and c not in EXPECTED_COLUMNS]
    if unrecognized:
        warnings.append(
            DecodeIssue(f"Unrecognized columns will be ignored: {', '.join(unrecognized)}", IssueKind.HEADER)
        )

    positions: dict[str, int] = {}
    for pos, column in enumerate(columns):
        if column not in EXPECTED_COLUMNS:
            continue
        if column in positions:
            warnings.append(DecodeIssue(f"Duplicate column ignored: {column}", IssueKind.HEADER))
            continue
        positions[column] = pos

    data: list[RawRow] = []
    for row_number, cells in table.records:
        if _is_blank(cells):
            continue
        mapped = {column: cells[pos] for column, pos in positions.items() if pos < len(cells)}
        data.append(_normalize_row(mapped, row_number, delimiter))

    if not data:
        errors.append(DecodeIssue("No data rows found in file", IssueKind.FILE))
        return DecodeResult.failed(errors, warnings)
    return DecodeResult(success=True, data=data, errors=errors, warnings=warnings)


def _read_csv_table(content: bytes) -> _Table:
    """Parse CSV text with pandas, keeping every cell as text.

    NA conversion is disabled entirely so values such as "NA" or "null" reach
    the validator untouched. Lines with more fields than the header are
    replaced by a placeholder so positions (and therefore row numbers) stay
    aligned; they are reported as row errors afterwards.
    """
    text = content.decode("utf-8-sig")  # UnicodeDecodeError handled by caller
    bad_lines: list[list[str]] = []

    def on_bad_line(line: list[str]) -> list[str]:
        bad_lines.append(line)
        return [_MALFORMED]

    frame = pd.read_csv(
        io.StringIO(text),
        header=None,
        dtype=object,
        keep_default_na=False,
        skip_blank_lines=False,
        engine="python",
        on_bad_lines=on_bad_line,
    )
    raw_rows = [list(r) for r in frame.itertuples(index=False, name=None)]
    if not raw_rows:
        raise pd.errors.EmptyDataError("no header row")

    header = [str(h) if cell_text(h) is not None else "" for h in raw_rows[0]]
    width = len(header)
    table = _Table(header=header, records=[])
    bad_iter = iter(bad_lines)
    for index, cells in enumerate(raw_rows[1:], start=2):
        if cells and cells[0] == _MALFORMED:
            seen = len(next(bad_iter, []))
            table.errors.append(
                DecodeIssue(
                    f"Row {index}: expected {width} fields but found {seen}",
                    IssueKind.ROW,
                    row=index,
                )
            )
            continue
        present = [v for v in cells if v is not None and not (not isinstance(v, str) and pd.isna(v))]
        if present and len(present) < width:
            # Short lines are padded with missing values by the parser.
            table.warnings.append(
                DecodeIssue(
                    f"Row {index}: expected {width} fields but found {len(present)}; missing cells left empty",
                    IssueKind.ROW,
                    row=index,
                )
            )
        table.records.append((index, cells))
    return table


def _read_xlsx_table(content: bytes) -> _Table:
    """Read the first worksheet with openpyxl.

    Every physical row is visited (blank ones included) so the reported row
    numbers match the worksheet.
    """
    workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    try:
        sheet_names = workbook.sheetnames
        if not sheet_names:
            raise ValueError("Excel file contains no sheets")
        warnings: list[DecodeIssue] = []
        if len(sheet_names) > 1:
            warnings.append(
                DecodeIssue(
                    f'Excel file contains {len(sheet_names)} sheets. '
                    f'Only the first sheet "{sheet_names[0]}" will be processed.',
                    IssueKind.FILE,
                )
            )
        sheet = workbook[sheet_names[0]]
        rows = [list(r) for r in sheet.iter_rows(min_row=1, values_only=True)]
    finally:
        workbook.close()

    if not rows or _is_blank(rows[0]):
        raise ValueError("Sheet is empty")

    header_cells = rows[0]
    width = max(i for i, h in enumerate(header_cells) if cell_text(h) is not None) + 1
    header = [cell_text(h) or "" for h in header_cells[:width]]
    table = _Table(header=header, records=[], warnings=warnings)
    for index, cells in enumerate(rows[1:], start=2):
        overflow = [v for v in cells[width:] if cell_text(v) is not None]
        if overflow:
            table.errors.append(
                DecodeIssue(
                    f"Row {index}: {len(overflow)} value(s) in columns without a header",
                    IssueKind.ROW,
                    row=index,
                )
            )
            continue
        table.records.append((index, cells[:width]))
    return table


def decode_csv(content: bytes, *, list_delimiter: str = DEFAULT_LIST_DELIMITER) -> DecodeResult:
    try:
        table = _read_csv_table(content)
    except UnicodeDecodeError:
        return _file_error("File is not valid UTF-8 text. Please upload a .csv or .xlsx file.")
    except pd.errors.EmptyDataError:
        return _file_error("File is empty")
    except (ValueError, csv.Error) as e:
        logger.debug("csv container parse failed: %s", e)
        return _file_error(f"Failed to parse CSV file: {e}")
    return _rows_from_table(table, list_delimiter)


def decode_xlsx(content: bytes, *, list_delimiter: str = DEFAULT_LIST_DELIMITER) -> DecodeResult:
    try:
        table = _read_xlsx_table(content)
    except ValueError as e:
        return _file_error(str(e))
    except Exception as e:  # BadZipFile, InvalidFileException, KeyError from broken parts
        logger.debug("xlsx container parse failed: %s", e)
        return _file_error("File is not a valid .xlsx workbook")
    return _rows_from_table(table, list_delimiter)


def decode_file(
    content: bytes,
    filename: str | None = None,
    content_type: str | None = None,
    *,
    max_bytes: int = DEFAULT_MAX_FILE_BYTES,
    list_delimiter: str = DEFAULT_LIST_DELIMITER,
) -> DecodeResult:
    """Decode an uploaded spreadsheet.

    Parameters
    ----------
    content: raw file bytes
    filename: original file name (extension fallback for format detection)
    content_type: declared MIME type, may be None
    max_bytes: size ceiling, checked before any parsing
    list_delimiter: separator for the trades / regions columns
    """
    try:
        fmt = detect_format(filename, content_type)
    except UnsupportedFormatError as e:
        return _file_error(str(e))
    if len(content) > max_bytes:
        size_mb = len(content) / (1024 * 1024)
        limit_mb = max_bytes / (1024 * 1024)
        return _file_error(f"File is too large ({size_mb:.1f} MB). Maximum size is {limit_mb:g} MB.")
    if not content:
        return _file_error("File is empty")

    if fmt == "csv":
        result = decode_csv(content, list_delimiter=list_delimiter)
    else:
        result = decode_xlsx(content, list_delimiter=list_delimiter)
    logger.info(
        "decoded file=%s format=%s success=%s rows=%d errors=%d warnings=%d",
        filename or "<upload>",
        fmt,
        result.success,
        len(result.data),
        len(result.errors),
        len(result.warnings),
    )
    return result


def read_upload(
    path: Path,
    *,
    max_bytes: int = DEFAULT_MAX_FILE_BYTES,
    list_delimiter: str = DEFAULT_LIST_DELIMITER,
) -> DecodeResult:
    """Decode a spreadsheet from disk (format from the extension)."""
    try:
        content = path.read_bytes()
    except OSError as e:
        return _file_error(f"Could not read file {path.name}: {e.strerror or e}")
    return decode_file(content, path.name, None, max_bytes=max_bytes, list_delimiter=list_delimiter)
