from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the agency import service.

These are produced by agency_import.config.loader after the YAML file has been
checked against config_schema.json. Every section has defaults so the API can
start without a config file.
"""

DEFAULT_MAX_FILE_BYTES = 10 * 1024 * 1024  # 10 MB upload ceiling
DEFAULT_LIST_DELIMITER = ","
DEFAULT_MAX_SLUG_ATTEMPTS = 100
DEFAULT_ERROR_LOG_DIR = "./logs"


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback.

    Environment variables (DATABASE_URL / PGDSN / PG*) take precedence over
    these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class UploadConfig:
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES
    list_delimiter: str = DEFAULT_LIST_DELIMITER  # separator for trades / regions cells


@dataclass(frozen=True)
class CommitConfig:
    max_slug_attempts: int = DEFAULT_MAX_SLUG_ATTEMPTS  # base slug, then -2 .. -N


@dataclass(frozen=True)
class LoggingConfig:
    error_log_dir: str = DEFAULT_ERROR_LOG_DIR
    level: str = "INFO"


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)
    commit: CommitConfig = field(default_factory=CommitConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
