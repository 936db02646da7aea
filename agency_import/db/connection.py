from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import psycopg2

from ..models.config_models import DatabaseConfig
from .repository import StorageUnavailableError

"""psycopg2 connection handling.

Connection settings are resolved in this order:
    1. DATABASE_URL / PGDSN (whole DSN)
    2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    3. the database section of config/import.yml
The CLI loads .env with override=True before this runs, so .env wins.
"""

__all__ = [
    "resolve_dsn",
    "open_cursor",
]

logger = logging.getLogger(__name__)


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def open_cursor(db_cfg: DatabaseConfig) -> Iterator[Any]:
    """Yield a cursor on a fresh connection, closed on exit.

    The connection runs in autocommit mode; callers open their own
    transactions with explicit BEGIN / COMMIT (one per imported row).
    """
    try:
        conn = psycopg2.connect(resolve_dsn(db_cfg))
    except psycopg2.Error as e:
        logger.error("database connect failed")
        logger.debug("database connect failed: %s", e)
        raise StorageUnavailableError(str(e)) from e
    conn.autocommit = True
    cur = conn.cursor()
    try:
        yield cur
    finally:
        try:
            cur.close()
        finally:
            conn.close()
