"""Domain models for the agency bulk import pipeline.

Decoded rows, validation results, commit outcomes, reference data and
configuration. All of them are transient value objects.
"""

from .config_models import CommitConfig, DatabaseConfig, ImportConfig, LoggingConfig, UploadConfig
from .error_record import ErrorRecord
from .import_result import BulkImportResponse, ImportRowOutcome, ImportStatus, ImportSummary
from .raw_row import DecodeIssue, DecodeResult, IssueKind, RawRow
from .reference import Operator, ReferenceData, normalize_name
from .validation import PreviewResult, RowValidationResult, ValidationSummary

__all__ = [
    # Configuration models
    "CommitConfig",
    "DatabaseConfig",
    "ImportConfig",
    "LoggingConfig",
    "UploadConfig",
    # Decode
    "DecodeIssue",
    "DecodeResult",
    "IssueKind",
    "RawRow",
    # Validate
    "PreviewResult",
    "RowValidationResult",
    "ValidationSummary",
    # Commit
    "BulkImportResponse",
    "ImportRowOutcome",
    "ImportStatus",
    "ImportSummary",
    # Reference / identity
    "Operator",
    "ReferenceData",
    "normalize_name",
    "ErrorRecord",
]
