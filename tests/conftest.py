# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pytest

from agency_import.api.dependencies import get_repository, hash_token
from agency_import.db.repository import StorageUnavailableError
from agency_import.models.config_models import ImportConfig, LoggingConfig
from agency_import.models.reference import Operator, ReferenceData, normalize_name

ADMIN_TOKEN = "admin-secret-token"
MEMBER_TOKEN = "member-secret-token"


class FakeRepository:
    """In-memory stand-in for AgencyRepository.

    Transactions are simulated: insert_agency stages a record, commit()
    publishes it, rollback() drops it.
    """

    def __init__(
        self,
        agencies: Sequence[Mapping[str, Any]] = (),
        trades: Sequence[tuple[str, str, str]] | None = None,
        regions: Sequence[tuple[str, str, str]] | None = None,
    ) -> None:
        self.agencies: list[dict[str, Any]] = [
            {"id": f"existing-{i}", "is_active": True, **a} for i, a in enumerate(agencies, start=1)
        ]
        self.trades = list(
            trades
            if trades is not None
            else [("t1", "Electrician", "electrician"), ("t2", "Welder", "welder"), ("t3", "Pipefitter", "pipefitter")]
        )
        self.regions = list(
            regions if regions is not None else [("r1", "Texas", "TX"), ("r2", "Louisiana", "LA")]
        )
        self.operators: dict[str, Operator] = {
            hash_token(ADMIN_TOKEN): Operator(id="op-admin", role="admin"),
            hash_token(MEMBER_TOKEN): Operator(id="op-member", role="user"),
        }
        self.links: list[tuple[str, list[str], list[str]]] = []
        self.calls: list[str] = []
        # fault injection
        self.insert_errors: dict[str, Exception] = {}  # normalised name -> raised by insert_agency
        self.link_errors: dict[str, Exception] = {}  # normalised name -> raised by link_agency
        self.concurrent_names: set[str] = set()  # names a "concurrent" import wins
        self.unavailable_after: int | None = None  # successful inserts before the connection drops
        self.reference_unavailable = False
        self._pending: list[dict[str, Any]] = []
        self._inserted = 0

    # reads
    def fetch_reference_data(self) -> ReferenceData:
        if self.reference_unavailable:
            raise StorageUnavailableError("could not connect to server")
        names = [a["name"] for a in self.agencies if a.get("is_active")]
        return ReferenceData.build(names, self.trades, self.regions)

    def slug_exists(self, slug: str) -> bool:
        return any(a.get("slug") == slug for a in self.agencies + self._pending)

    def resolve_operator(self, token_hash: str) -> Operator | None:
        return self.operators.get(token_hash)

    # transactions
    def begin(self) -> None:
        self.calls.append("BEGIN")
        self._pending = []

    def commit(self) -> None:
        self.calls.append("COMMIT")
        self.agencies.extend(self._pending)
        self._pending = []

    def rollback(self) -> None:
        self.calls.append("ROLLBACK")
        self._pending = []

    # writes
    def insert_agency(self, record: Mapping[str, Any]) -> str | None:
        key = normalize_name(record["name"])
        if self.unavailable_after is not None and self._inserted >= self.unavailable_after:
            raise StorageUnavailableError("server closed the connection unexpectedly")
        if key in self.insert_errors:
            raise self.insert_errors[key]
        active = {normalize_name(a["name"]) for a in self.agencies if a.get("is_active")}
        if key in active or key in self.concurrent_names:
            return None
        self._inserted += 1
        agency_id = f"agency-{self._inserted}"
        self._pending.append({"id": agency_id, **record})
        return agency_id

    def link_agency(self, agency_id: str, trade_ids: Sequence[str], region_ids: Sequence[str]) -> None:
        name = next(a["name"] for a in self._pending if a["id"] == agency_id)
        if normalize_name(name) in self.link_errors:
            raise self.link_errors[normalize_name(name)]
        self.links.append((agency_id, list(trade_ids), list(region_ids)))

    def created_names(self) -> list[str]:
        return [a["name"] for a in self.agencies if str(a["id"]).startswith("agency-")]


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
upload:
  max_file_bytes: 1048576
  list_delimiter: ","
import:
  max_slug_attempts: 5
logging:
  error_log_dir: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def fake_repository() -> FakeRepository:
    return FakeRepository(agencies=[{"name": "Existing Staffing", "slug": "existing-staffing"}])


@pytest.fixture()
def app_config(tmp_path: Path) -> ImportConfig:
    return ImportConfig(logging=LoggingConfig(error_log_dir=str(tmp_path / "logs")))


@pytest.fixture()
def client(fake_repository: FakeRepository, app_config: ImportConfig):
    from fastapi.testclient import TestClient

    from agency_import.api import create_app

    app = create_app(app_config)
    app.dependency_overrides[get_repository] = lambda: fake_repository
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture()
def member_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {MEMBER_TOKEN}"}
