"""File Decoder: CSV / XLSX uploads to numbered raw rows."""

from .reader import (
    EXPECTED_COLUMNS,
    UnsupportedFormatError,
    decode_csv,
    decode_file,
    decode_xlsx,
    detect_format,
    normalize_header,
    read_upload,
)

__all__ = [
    "EXPECTED_COLUMNS",
    "UnsupportedFormatError",
    "decode_csv",
    "decode_file",
    "decode_xlsx",
    "detect_format",
    "normalize_header",
    "read_upload",
]
