from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

import psycopg2

from ..models.reference import Operator, ReferenceData
from .batch_insert import BatchInsertError, batch_insert

"""Agency data store access (PostgreSQL via psycopg2).

Every method translates driver exceptions into the RepositoryError family.
The driver text stays in the exception message for the server-side logs;
public_message is what an operator may see.

Transactions are explicit: the caller runs begin() / commit() / rollback()
around each agency, on a connection opened in autocommit mode.
"""

__all__ = [
    "RepositoryError",
    "IntegrityViolation",
    "StorageUnavailableError",
    "AgencyRepository",
    "AGENCY_COLUMNS",
]

logger = logging.getLogger(__name__)

AGENCY_COLUMNS: tuple[str, ...] = (
    "name",
    "slug",
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
    "is_active",
    "is_claimed",
    "profile_completion_percentage",
)


class RepositoryError(Exception):
    """Storage rejected an operation."""
    public_message = "Could not save agency"
    error_type = "DATABASE_ERROR"


class IntegrityViolation(RepositoryError):
    """Constraint violation (unique, not-null, check, foreign key)."""
    public_message = "Database rejected the record"
    error_type = "INTEGRITY_ERROR"


class StorageUnavailableError(RepositoryError):
    """Connection lost or never established."""
    public_message = "Storage unavailable; row was not imported"
    error_type = "STORAGE_UNAVAILABLE"


@contextmanager
def _translate(action: str) -> Iterator[None]:
    try:
        yield
    except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
        raise StorageUnavailableError(f"{action}: {e}") from e
    except psycopg2.IntegrityError as e:
        raise IntegrityViolation(f"{action}: {e}") from e
    except psycopg2.Error as e:
        raise RepositoryError(f"{action}: {e}") from e


class AgencyRepository:
    """Thin SQL layer over one cursor."""

    def __init__(self, cursor: Any) -> None:
        self.cursor = cursor

    # -- reads -----------------------------------------------------------

    def fetch_active_agency_names(self) -> list[str]:
        with _translate("fetch agency names"):
            self.cursor.execute("SELECT name FROM agencies WHERE is_active")
            return [r[0] for r in self.cursor.fetchall()]

    def fetch_reference_data(self) -> ReferenceData:
        names = self.fetch_active_agency_names()
        with _translate("fetch trades"):
            self.cursor.execute("SELECT id, name, slug FROM trades")
            trades = [(str(i), n, s) for i, n, s in self.cursor.fetchall()]
        with _translate("fetch regions"):
            self.cursor.execute("SELECT id, name, code FROM regions")
            regions = [(str(i), n, c) for i, n, c in self.cursor.fetchall()]
        return ReferenceData.build(names, trades, regions)

    def slug_exists(self, slug: str) -> bool:
        with _translate("check slug"):
            self.cursor.execute("SELECT 1 FROM agencies WHERE slug = %s LIMIT 1", (slug,))
            return self.cursor.fetchone() is not None

    def resolve_operator(self, token_hash: str) -> Operator | None:
        with _translate("resolve operator"):
            self.cursor.execute(
                "SELECT id, role FROM profiles WHERE api_token_hash = %s",
                (token_hash,),
            )
            row = self.cursor.fetchone()
        if row is None:
            return None
        return Operator(id=str(row[0]), role=str(row[1]))

    # -- transactions ------------------------------------------------------

    def begin(self) -> None:
        with _translate("begin"):
            self.cursor.execute("BEGIN")

    def commit(self) -> None:
        with _translate("commit"):
            self.cursor.execute("COMMIT")

    def rollback(self) -> None:
        try:
            self.cursor.execute("ROLLBACK")
        except psycopg2.Error as e:
            # connection already gone; nothing left to undo
            logger.warning("rollback failed: %s", e)

    # -- writes ------------------------------------------------------------

    def insert_agency(self, record: Mapping[str, Any]) -> str | None:
        """Insert one agency, returning its id.

        None means an active agency with the same normalised name already
        exists (the unique index on lower(btrim(name)) fired).
        """
        columns = [c for c in AGENCY_COLUMNS if c in record]
        cols_sql = ",".join(f'"{c}"' for c in columns)
        placeholders = ",".join(["%s"] * len(columns))
        sql = (
            f"INSERT INTO agencies ({cols_sql}) VALUES ({placeholders}) "
            "ON CONFLICT ((lower(btrim(name)))) WHERE is_active DO NOTHING "
            "RETURNING id"
        )
        with _translate("insert agency"):
            self.cursor.execute(sql, tuple(record[c] for c in columns))
            row = self.cursor.fetchone()
        return None if row is None else str(row[0])

    def link_agency(self, agency_id: str, trade_ids: Sequence[str], region_ids: Sequence[str]) -> None:
        """Write trade / region links inside a savepoint.

        On failure the savepoint is rolled back (the agency insert survives)
        and RepositoryError is raised.
        """
        if not trade_ids and not region_ids:
            return
        with _translate("savepoint"):
            self.cursor.execute("SAVEPOINT agency_links")
        try:
            batch_insert(
                self.cursor,
                "agency_trades",
                ["agency_id", "trade_id"],
                [(agency_id, t) for t in trade_ids],
                on_conflict_do_nothing=True,
            )
            batch_insert(
                self.cursor,
                "agency_regions",
                ["agency_id", "region_id"],
                [(agency_id, r) for r in region_ids],
                on_conflict_do_nothing=True,
            )
        except BatchInsertError as e:
            if isinstance(e.__cause__, (psycopg2.OperationalError, psycopg2.InterfaceError)):
                raise StorageUnavailableError(f"link agency: {e}") from e
            with _translate("rollback to savepoint"):
                self.cursor.execute("ROLLBACK TO SAVEPOINT agency_links")
            raise RepositoryError(f"link agency: {e}") from e
        with _translate("release savepoint"):
            self.cursor.execute("RELEASE SAVEPOINT agency_links")
