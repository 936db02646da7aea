from __future__ import annotations

import psycopg2
import pytest

from agency_import.db.batch_insert import BatchInsertError
from agency_import.db.repository import (
    AgencyRepository,
    IntegrityViolation,
    RepositoryError,
    StorageUnavailableError,
)


class DummyCursor:
    """Records SQL; results are queued per call."""

    def __init__(self, results: list | None = None, fail_on: dict[str, Exception] | None = None) -> None:
        self.executed: list[tuple[str, tuple | None]] = []
        self.results = list(results or [])
        self.fail_on = fail_on or {}

    def execute(self, sql: str, params: tuple | None = None) -> None:
        self.executed.append((sql, params))
        for fragment, exc in self.fail_on.items():
            if fragment in sql:
                raise exc

    def fetchall(self):
        return self.results.pop(0)

    def fetchone(self):
        return self.results.pop(0)

    @property
    def statements(self) -> list[str]:
        return [sql for sql, _ in self.executed]


def test_fetch_reference_data_builds_lookup_maps():
    cur = DummyCursor(
        results=[
            [("Existing Staffing",)],
            [(1, "Electrician", "electrician")],
            [(7, "Texas", "TX")],
        ]
    )
    ref = AgencyRepository(cur).fetch_reference_data()
    assert ref.has_agency(" existing staffing ")
    assert ref.trade_id("ELECTRICIAN") == "1"
    assert ref.region_id("tx") == "7"
    assert ref.region_id("texas") == "7"
    assert cur.statements[0] == "SELECT name FROM agencies WHERE is_active"


def test_insert_agency_returns_id_or_none():
    cur = DummyCursor(results=[("uuid-1",), None])
    repo = AgencyRepository(cur)
    record = {"name": "Acme", "slug": "acme", "is_active": True, "bogus": "ignored"}
    assert repo.insert_agency(record) == "uuid-1"
    sql, params = cur.executed[0]
    assert sql.startswith('INSERT INTO agencies ("name","slug","is_active") VALUES (%s,%s,%s)')
    assert "ON CONFLICT ((lower(btrim(name)))) WHERE is_active DO NOTHING" in sql
    assert sql.endswith("RETURNING id")
    assert params == ("Acme", "acme", True)
    assert repo.insert_agency(record) is None


@pytest.mark.parametrize(
    "exc,expected",
    [
        (psycopg2.IntegrityError("duplicate key value violates unique constraint"), IntegrityViolation),
        (psycopg2.OperationalError("server closed the connection unexpectedly"), StorageUnavailableError),
        (psycopg2.InterfaceError("connection already closed"), StorageUnavailableError),
        (psycopg2.ProgrammingError("column does not exist"), RepositoryError),
    ],
)
def test_driver_errors_are_translated(exc, expected):
    repo = AgencyRepository(DummyCursor(fail_on={"INSERT INTO agencies": exc}))
    with pytest.raises(expected) as excinfo:
        repo.insert_agency({"name": "Acme", "slug": "acme"})
    assert excinfo.value.__cause__ is exc
    assert excinfo.value.public_message in {
        "Database rejected the record",
        "Storage unavailable; row was not imported",
        "Could not save agency",
    }


def test_transaction_statements():
    cur = DummyCursor()
    repo = AgencyRepository(cur)
    repo.begin()
    repo.commit()
    repo.rollback()
    assert cur.statements == ["BEGIN", "COMMIT", "ROLLBACK"]


def test_rollback_on_dead_connection_does_not_raise():
    repo = AgencyRepository(DummyCursor(fail_on={"ROLLBACK": psycopg2.InterfaceError("connection already closed")}))
    repo.rollback()


def test_slug_exists_and_resolve_operator():
    cur = DummyCursor(results=[(1,), None, ("op-1", "admin"), None])
    repo = AgencyRepository(cur)
    assert repo.slug_exists("acme") is True
    assert repo.slug_exists("beta") is False
    operator = repo.resolve_operator("hash")
    assert operator is not None and operator.is_admin
    assert repo.resolve_operator("unknown") is None


def test_link_agency_uses_savepoint(monkeypatch):
    import agency_import.db.repository as repo_mod

    calls = []

    def fake_batch_insert(cursor, table, columns, rows, on_conflict_do_nothing=False):
        calls.append((table, list(rows)))

    monkeypatch.setattr(repo_mod, "batch_insert", fake_batch_insert)
    cur = DummyCursor()
    AgencyRepository(cur).link_agency("a1", ["t1"], ["r1", "r2"])
    assert cur.statements == ["SAVEPOINT agency_links", "RELEASE SAVEPOINT agency_links"]
    assert calls == [
        ("agency_trades", [("a1", "t1")]),
        ("agency_regions", [("a1", "r1"), ("a1", "r2")]),
    ]


def test_link_agency_failure_rolls_back_to_savepoint(monkeypatch):
    import agency_import.db.repository as repo_mod

    def failing(*args, **kwargs):
        raise BatchInsertError("foreign key violation") from psycopg2.IntegrityError("fk")

    monkeypatch.setattr(repo_mod, "batch_insert", failing)
    cur = DummyCursor()
    with pytest.raises(RepositoryError) as excinfo:
        AgencyRepository(cur).link_agency("a1", ["t1"], [])
    assert not isinstance(excinfo.value, StorageUnavailableError)
    assert cur.statements == ["SAVEPOINT agency_links", "ROLLBACK TO SAVEPOINT agency_links"]


def test_link_agency_connection_loss(monkeypatch):
    import agency_import.db.repository as repo_mod

    def failing(*args, **kwargs):
        raise BatchInsertError("gone") from psycopg2.OperationalError("gone")

    monkeypatch.setattr(repo_mod, "batch_insert", failing)
    with pytest.raises(StorageUnavailableError):
        AgencyRepository(DummyCursor()).link_agency("a1", ["t1"], [])


def test_link_agency_without_ids_is_noop():
    cur = DummyCursor()
    AgencyRepository(cur).link_agency("a1", [], [])
    assert cur.executed == []
