from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config, load_config_or_default
from ..db.connection import open_cursor
from ..db.repository import AgencyRepository, RepositoryError, StorageUnavailableError
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, setup_logging
from ..models.config_models import ImportConfig
from ..models.error_record import UNKNOWN_ROW
from ..models.raw_row import DecodeResult, RawRow
from ..models.validation import PreviewResult
from ..services.committer import commit_rows
from ..services.progress import ProgressTracker
from ..services.summary import render_import_summary, render_preview_summary
from ..services.validator import validate_rows
from ..spreadsheet.reader import read_upload

"""CLI entrypoint.

    agency-import preview FILE
    agency-import import FILE [--dry-run]

Runs the same decode -> validate -> commit pipeline as the HTTP API on a
local CSV / XLSX file. Output is labeled log lines on stdout ending with a
SUMMARY line.

Exit codes: 0 all rows fine, 2 partial (invalid / skipped / failed rows),
1 fatal (config, unreadable file, storage unreachable).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


@contextmanager
def _open_repository(cfg: ImportConfig) -> Iterator[AgencyRepository]:
    with open_cursor(cfg.database) as cur:
        yield AgencyRepository(cur)


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; its values win over the process environment for DB settings."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="agency-import", description="Bulk agency import from CSV / XLSX")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    preview = sub.add_parser("preview", help="Decode and validate a file without writing anything")
    preview.add_argument("file", type=Path)

    run = sub.add_parser("import", help="Decode, validate and import the valid rows")
    run.add_argument("file", type=Path)
    run.add_argument("--dry-run", action="store_true", help="Stop after validation")
    return p.parse_args(argv)


def _report_decode(logger: logging.Logger, result: DecodeResult) -> None:
    for issue in result.errors:
        logger.error(f"decode: {issue.message}")
    for issue in result.warnings:
        logger.warning(f"decode: {issue.message}")


def _report_preview(logger: logging.Logger, preview: PreviewResult) -> None:
    for row in preview.rows:
        for message in row.errors:
            logger.error(f"row {row.row_number}: {message}")
        for message in row.warnings:
            logger.warning(f"row {row.row_number}: {message}")


def _decode(logger: logging.Logger, cfg: ImportConfig, path: Path, error_log: ErrorLogBuffer) -> DecodeResult:
    result = read_upload(path, max_bytes=cfg.upload.max_file_bytes, list_delimiter=cfg.upload.list_delimiter)
    _report_decode(logger, result)
    for issue in result.errors:
        error_log.record("decode", issue.row if issue.row is not None else UNKNOWN_ROW, "DECODE_ERROR", issue.message)
    return result


def _preview(logger: logging.Logger, cfg: ImportConfig, rows: list[RawRow]) -> PreviewResult:
    """Validate with reference data when the database is reachable, without it otherwise."""
    try:
        with _open_repository(cfg) as repo:
            reference = repo.fetch_reference_data()
    except RepositoryError as e:
        logger.warning(f"reference data unavailable, skipping lookups: {e.public_message}")
        logger.debug(f"reference data: {e}")
        reference = None
    preview = validate_rows(rows, reference, list_delimiter=cfg.upload.list_delimiter)
    _report_preview(logger, preview)
    return preview


def _run_import(logger: logging.Logger, cfg: ImportConfig, rows: list[RawRow], error_log: ErrorLogBuffer) -> int:
    try:
        with _open_repository(cfg) as repo:
            reference = repo.fetch_reference_data()
            preview = validate_rows(rows, reference, list_delimiter=cfg.upload.list_delimiter)
            _report_preview(logger, preview)
            valid_numbers = {r.row_number for r in preview.valid_rows}
            to_commit = [r for r in rows if r.row_number in valid_numbers]
            logger.info(f"importing {len(to_commit)} of {len(rows)} rows")
            with ProgressTracker(len(to_commit)) as progress:
                response = commit_rows(
                    repo,
                    to_commit,
                    max_slug_attempts=cfg.commit.max_slug_attempts,
                    list_delimiter=cfg.upload.list_delimiter,
                    error_log=error_log,
                    on_outcome=progress.advance,
                )
    except StorageUnavailableError as e:
        logger.error(f"storage unavailable: {e.public_message}")
        logger.debug(f"storage: {e}")
        error_log.record("commit", UNKNOWN_ROW, e.error_type, str(e))
        return EXIT_FATAL

    for outcome in response.results:
        if outcome.reason:
            logger.warning(f"row {outcome.row_number}: {outcome.status.value} {outcome.agency_name}: {outcome.reason}")
    log_summary(render_import_summary(response.summary)[len("SUMMARY "):])
    partial = preview.summary.invalid > 0 or response.summary.skipped > 0 or response.summary.failed > 0
    return EXIT_PARTIAL_FAILURE if partial else EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # Only read sys.argv when argv is None; [] from tests must stay empty.
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        if args.config == DEFAULT_CONFIG_PATH:
            cfg = load_config_or_default(args.config)
        else:
            cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    level = "DEBUG" if args.debug else cfg.logging.level
    logger.setLevel(level)
    for h in logger.handlers:
        h.setLevel(level)
    logger.debug("debug mode enabled")

    error_log = ErrorLogBuffer(cfg.logging.error_log_dir, source=args.file.name)
    try:
        decoded = _decode(logger, cfg, args.file, error_log)
        if not decoded.success:
            return EXIT_FATAL
        logger.info(f"decoded {len(decoded.data)} rows from {args.file.name}")

        if args.command == "preview" or args.dry_run:
            preview = _preview(logger, cfg, decoded.data)
            log_summary(render_preview_summary(preview.summary)[len("SUMMARY "):])
            partial = preview.summary.invalid > 0 or bool(decoded.errors)
            return EXIT_PARTIAL_FAILURE if partial else EXIT_SUCCESS_ALL

        code = _run_import(logger, cfg, decoded.data, error_log)
        if code == EXIT_SUCCESS_ALL and decoded.errors:
            code = EXIT_PARTIAL_FAILURE
        return code
    finally:
        path = error_log.flush()
        if path is not None:
            logger.info(f"error log: {path}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
