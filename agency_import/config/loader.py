from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    CommitConfig,
    DatabaseConfig,
    ImportConfig,
    LoggingConfig,
    UploadConfig,
)

"""Config loader.

- Load YAML (config/import.yml by default)
- Validate against the bundled config_schema.json (unknown keys rejected)
- Apply defaults for every missing section / key
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "default_config",
    "load_config",
    "load_config_or_default",
]

DEFAULT_CONFIG_PATH = Path("config/import.yml")
SCHEMA_PATH = Path(__file__).with_name("config_schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Raise ConfigError when the schema file is unusable or data violates it."""
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        where = ".".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"config validation failed at {where}: {e.message}") from e


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    return data.get(key) or {}


def _build(data: dict[str, Any]) -> ImportConfig:
    defaults = ImportConfig()
    db_raw = _section(data, "database")
    upload_raw = _section(data, "upload")
    import_raw = _section(data, "import")
    logging_raw = _section(data, "logging")
    return ImportConfig(
        database=DatabaseConfig(
            host=db_raw.get("host"),
            port=db_raw.get("port"),
            user=db_raw.get("user"),
            password=db_raw.get("password"),
            database=db_raw.get("database"),
            dsn=db_raw.get("dsn"),
        ),
        upload=UploadConfig(
            max_file_bytes=upload_raw.get("max_file_bytes", defaults.upload.max_file_bytes),
            list_delimiter=upload_raw.get("list_delimiter", defaults.upload.list_delimiter),
        ),
        commit=CommitConfig(
            max_slug_attempts=import_raw.get("max_slug_attempts", defaults.commit.max_slug_attempts),
        ),
        logging=LoggingConfig(
            error_log_dir=logging_raw.get("error_log_dir", defaults.logging.error_log_dir),
            level=logging_raw.get("level", defaults.logging.level),
        ),
    )


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)
    return _build(data)


def default_config() -> ImportConfig:
    return ImportConfig()


def load_config_or_default(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    """Like load_config, but a missing file yields defaults (API start-up)."""
    if not path.exists():
        return default_config()
    return load_config(path)
