from __future__ import annotations
import pytest
from pathlib import Path
from agency_import.config.loader import ConfigError, default_config, load_config, load_config_or_default


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.database.host == "localhost"
    assert cfg.database.port == 5432
    assert cfg.upload.max_file_bytes == 1048576
    assert cfg.upload.list_delimiter == ","
    assert cfg.commit.max_slug_attempts == 5
    assert cfg.logging.error_log_dir == "./logs"
    # not in the file
    assert cfg.logging.level == "INFO"


def test_load_config_missing_file(temp_workdir: Path):
    missing = temp_workdir / "config" / "not_exists.yml"
    with pytest.raises(ConfigError):
        load_config(missing)


def test_load_config_invalid_yaml(write_config: Path):
    write_config.write_text("database: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "invalid yaml" in str(e.value)


def test_load_config_root_must_be_mapping(write_config: Path):
    write_config.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(write_config)


def test_load_config_extra_field(write_config: Path):
    # additionalProperties: false at the root
    text = write_config.read_text(encoding="utf-8") + "\nextra_field: not_allowed\n"
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_load_config_invalid_value_reports_location(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("max_slug_attempts: 5", "max_slug_attempts: 0")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "import.max_slug_attempts" in str(e.value)


def test_empty_file_yields_defaults(write_config: Path):
    write_config.write_text("", encoding="utf-8")
    assert load_config(write_config) == default_config()


def test_load_config_or_default(temp_workdir: Path):
    cfg = load_config_or_default(temp_workdir / "config" / "missing.yml")
    assert cfg.upload.max_file_bytes == 10 * 1024 * 1024
    assert cfg.commit.max_slug_attempts == 100
