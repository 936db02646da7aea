from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

"""Reference data consulted by the Row Validator and the Import Committer."""

__all__ = [
    "ReferenceData",
    "Operator",
    "normalize_name",
]


def normalize_name(name: str) -> str:
    """Identity key used for duplicate detection.

    Must stay in line with the storage-level unique index on
    ``lower(btrim(name))``.
    """
    return name.strip().lower()


@dataclass(frozen=True)
class ReferenceData:
    """Snapshot of what the data store knows, loaded once per request.

    trades: lowercase trade name or slug -> trade id
    regions: uppercase region code or lowercase region name -> region id
    """
    existing_names: frozenset[str] = frozenset()
    trades: Mapping[str, str] = field(default_factory=dict)
    regions: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        agency_names: Iterable[str] = (),
        trades: Iterable[tuple[str, str, str]] = (),
        regions: Iterable[tuple[str, str, str]] = (),
    ) -> ReferenceData:
        """Build from raw rows: trades as (id, name, slug), regions as (id, name, code)."""
        trade_map: dict[str, str] = {}
        for trade_id, name, slug in trades:
            trade_map[name.lower()] = str(trade_id)
            trade_map[slug.lower()] = str(trade_id)
        region_map: dict[str, str] = {}
        for region_id, name, code in regions:
            region_map[code.upper()] = str(region_id)
            region_map[name.lower()] = str(region_id)
        return cls(
            existing_names=frozenset(normalize_name(n) for n in agency_names if n),
            trades=trade_map,
            regions=region_map,
        )

    def has_agency(self, name: str) -> bool:
        return normalize_name(name) in self.existing_names

    def trade_id(self, trade: str) -> str | None:
        return self.trades.get(trade.strip().lower())

    def region_id(self, region: str) -> str | None:
        trimmed = region.strip()
        return self.regions.get(trimmed.upper()) or self.regions.get(trimmed.lower())


@dataclass(frozen=True)
class Operator:
    """Authenticated user driving the import, as resolved by the identity store."""
    id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
