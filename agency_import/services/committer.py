from __future__ import annotations

import logging
import re
import unicodedata
from collections.abc import Callable, Mapping, Sequence
from datetime import date
from typing import Any, Protocol

from ..db.repository import RepositoryError, StorageUnavailableError
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import DEFAULT_MAX_SLUG_ATTEMPTS
from ..models.error_record import UNKNOWN_ROW
from ..models.import_result import BulkImportResponse, ImportRowOutcome
from ..models.raw_row import RawRow
from ..models.reference import ReferenceData, normalize_name
from .validator import MIN_FOUNDED_YEAR, coerce_fields

"""Import Committer.

Persists operator-approved rows one by one, in submission order. Each row is
its own transaction and ends in exactly one terminal state (created / skipped
/ failed). A failure never affects another row's outcome.

Duplicate identity = an active agency whose trimmed, case-folded name equals
the row's. The in-memory check is repeated for every row (names created
earlier in the batch included) and the storage unique index on
lower(btrim(name)) backs it up, so a re-submitted batch creates nothing new.
"""

__all__ = [
    "AgencyStore",
    "DUPLICATE_REASON",
    "build_agency_record",
    "commit_rows",
    "slugify",
]

logger = logging.getLogger(__name__)

DUPLICATE_REASON = "Agency with this name already exists"
NAME_REQUIRED_REASON = "Name is required"
NO_SLUG_REASON = "Unable to generate slug from name"
SLUG_EXHAUSTED_REASON = "Unable to generate a unique slug for this name"
UNEXPECTED_REASON = "Unexpected error while importing row"


class AgencyStore(Protocol):
    """What the committer needs from storage (AgencyRepository or a test fake)."""

    def fetch_reference_data(self) -> ReferenceData: ...
    def slug_exists(self, slug: str) -> bool: ...
    def begin(self) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
    def insert_agency(self, record: Mapping[str, Any]) -> str | None: ...
    def link_agency(self, agency_id: str, trade_ids: Sequence[str], region_ids: Sequence[str]) -> None: ...


def slugify(name: str) -> str:
    """``"ABC Staffing, Inc."`` -> ``"abc-staffing-inc"``."""
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", ascii_name.lower()).strip("-")


def _unique_slug(store: AgencyStore, base: str, taken: set[str], max_attempts: int) -> str | None:
    for attempt in range(1, max_attempts + 1):
        candidate = base if attempt == 1 else f"{base}-{attempt}"
        if candidate in taken or store.slug_exists(candidate):
            continue
        return candidate
    return None


def _founded_year(value: Any) -> int | None:
    """Year as int, or None when not a year in 1800..current year."""
    if isinstance(value, str) and value.isdigit():
        year = int(value)
        if MIN_FOUNDED_YEAR <= year <= date.today().year:
            return year
    return None


def build_agency_record(fields: Mapping[str, Any], slug: str) -> dict[str, Any]:
    """Insert payload for the agencies table from coerced row fields."""
    return {
        "name": fields["name"],
        "slug": slug,
        "description": fields.get("description"),
        "website": fields.get("website"),
        "phone": fields.get("phone"),
        "email": fields.get("email"),
        "headquarters": fields.get("headquarters"),
        "founded_year": _founded_year(fields.get("founded_year")),
        "employee_count": fields.get("employee_count"),
        "company_size": fields.get("company_size"),
        "offers_per_diem": fields.get("offers_per_diem") is True,
        "is_union": fields.get("is_union") is True,
        "is_active": True,
        "is_claimed": False,
        "profile_completion_percentage": 0,
    }


def _resolve_links(fields: Mapping[str, Any], reference: ReferenceData) -> tuple[list[str], list[str]]:
    trade_ids: list[str] = []
    for trade in fields.get("trades") or []:
        tid = reference.trade_id(trade) if isinstance(trade, str) else None
        if tid is not None and tid not in trade_ids:
            trade_ids.append(tid)
    region_ids: list[str] = []
    for region in fields.get("regions") or []:
        rid = reference.region_id(region) if isinstance(region, str) else None
        if rid is not None and rid not in region_ids:
            region_ids.append(rid)
    return trade_ids, region_ids


class _BatchState:
    """Names and slugs known to exist, extended as rows are created."""

    def __init__(self, reference: ReferenceData) -> None:
        self.reference = reference
        self.names: set[str] = set(reference.existing_names)
        self.slugs: set[str] = set()


def _commit_one(
    store: AgencyStore,
    row: RawRow,
    state: _BatchState,
    max_slug_attempts: int,
    list_delimiter: str,
    error_log: ErrorLogBuffer | None,
) -> ImportRowOutcome:
    fields = coerce_fields(row.fields, list_delimiter=list_delimiter)
    name = fields.get("name")
    if not isinstance(name, str) or not name:
        return ImportRowOutcome.failed(row.row_number, "", NAME_REQUIRED_REASON)

    key = normalize_name(name)
    if key in state.names:
        return ImportRowOutcome.skipped(row.row_number, name, DUPLICATE_REASON)

    base = slugify(name)
    if not base:
        return ImportRowOutcome.failed(row.row_number, name, NO_SLUG_REASON)

    store.begin()
    try:
        slug = _unique_slug(store, base, state.slugs, max_slug_attempts)
        if slug is None:
            store.rollback()
            return ImportRowOutcome.failed(row.row_number, name, SLUG_EXHAUSTED_REASON)

        agency_id = store.insert_agency(build_agency_record(fields, slug))
        if agency_id is None:
            # lost the race against a concurrent import
            store.rollback()
            state.names.add(key)
            return ImportRowOutcome.skipped(row.row_number, name, DUPLICATE_REASON)

        trade_ids, region_ids = _resolve_links(fields, state.reference)
        try:
            store.link_agency(agency_id, trade_ids, region_ids)
        except StorageUnavailableError:
            raise
        except RepositoryError as e:
            logger.warning("row %s: agency %s created without links", row.row_number, agency_id)
            logger.debug("row %s: link failure: %s", row.row_number, e)
            if error_log is not None:
                error_log.record("commit", row.row_number, "LINK_ERROR", str(e))

        store.commit()
    except BaseException:
        store.rollback()
        raise

    state.names.add(key)
    state.slugs.add(slug)
    return ImportRowOutcome.created(row.row_number, name, agency_id)


def _display_name(row: RawRow) -> str:
    name = row.get("name")
    return name.strip() if isinstance(name, str) else ""


def commit_rows(
    store: AgencyStore,
    rows: Sequence[RawRow],
    *,
    max_slug_attempts: int = DEFAULT_MAX_SLUG_ATTEMPTS,
    list_delimiter: str = ",",
    error_log: ErrorLogBuffer | None = None,
    on_outcome: Callable[[ImportRowOutcome], None] | None = None,
) -> BulkImportResponse:
    """Persist rows and report one outcome per row, in input order.

    Reference data is loaded first; StorageUnavailableError there propagates
    (no row has been touched yet). After that no exception escapes: losing the
    connection mid-batch fails the current row and every remaining one with
    the same reason.

    Args:
        store: AgencyRepository (or compatible)
        rows: rows the operator approved after preview
        max_slug_attempts: base slug plus -2 .. -N suffixes before giving up
        list_delimiter: separator for list columns sent as plain text
        error_log: receives raw storage errors
        on_outcome: called after each row (progress display)
    """
    state = _BatchState(store.fetch_reference_data())
    outcomes: list[ImportRowOutcome] = []
    unavailable = False

    for row in rows:
        if unavailable:
            outcome = ImportRowOutcome.failed(
                row.row_number, _display_name(row), StorageUnavailableError.public_message
            )
        else:
            try:
                outcome = _commit_one(store, row, state, max_slug_attempts, list_delimiter, error_log)
            except StorageUnavailableError as e:
                unavailable = True
                logger.error("row %s: %s", row.row_number, e.public_message)
                logger.debug("row %s: %s", row.row_number, e)
                if error_log is not None:
                    error_log.record("commit", row.row_number, e.error_type, str(e))
                outcome = ImportRowOutcome.failed(row.row_number, _display_name(row), e.public_message)
            except RepositoryError as e:
                logger.error("row %s: %s", row.row_number, e.public_message)
                logger.debug("row %s: %s", row.row_number, e)
                if error_log is not None:
                    error_log.record("commit", row.row_number, e.error_type, str(e))
                outcome = ImportRowOutcome.failed(row.row_number, _display_name(row), e.public_message)
            except Exception as e:
                logger.error("row %s: %s", row.row_number, UNEXPECTED_REASON)
                logger.debug("row %s: unexpected commit failure", row.row_number, exc_info=True)
                if error_log is not None:
                    error_log.record("commit", row.row_number, "UNEXPECTED_ERROR", f"{type(e).__name__}: {e}")
                outcome = ImportRowOutcome.failed(row.row_number, _display_name(row), UNEXPECTED_REASON)

        outcomes.append(outcome)
        if outcome.reason:
            logger.info("row %s: %s %s (%s)", row.row_number, outcome.status.value, outcome.agency_name, outcome.reason)
        if on_outcome is not None:
            on_outcome(outcome)

    response = BulkImportResponse.from_outcomes(outcomes)
    if unavailable and error_log is not None:
        error_log.record(
            "commit",
            UNKNOWN_ROW,
            StorageUnavailableError.error_type,
            f"batch aborted: {response.summary.failed} row(s) failed",
        )
    return response
