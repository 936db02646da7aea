from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

"""Bundled JSON schemas (agency row contract, error log record)."""

__all__ = [
    "SCHEMA_DIR",
    "load_schema",
]

SCHEMA_DIR = Path(__file__).parent


@lru_cache(maxsize=None)
def load_schema(name: str) -> dict[str, Any]:
    """Load ``<name>.schema.json`` from this package."""
    return json.loads((SCHEMA_DIR / f"{name}.schema.json").read_text(encoding="utf-8"))
