from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

"""Batched INSERT via psycopg2.extras.execute_values.

Used for the agency_trades / agency_regions link rows written after each
agency insert. Table and column names come from code, never from uploaded
data.
"""

__all__ = [
    "BatchInsertError",
    "InsertResult",
    "batch_insert",
]


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int  # rows handed to execute_values, not rows actually written


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    page_size: int = 1000,
    on_conflict_do_nothing: bool = False,
) -> InsertResult:
    """Insert rows into table in pages.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: target table
    columns: insert columns, same order as each row
    rows: row values
    page_size: execute_values page size
    on_conflict_do_nothing: append ``ON CONFLICT DO NOTHING`` (link tables
        with a composite primary key)
    """
    rows_list = [tuple(r) for r in rows]
    if not rows_list:
        return InsertResult(inserted_rows=0)

    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = f"INSERT INTO {table} ({cols_sql}) VALUES %s"
    if on_conflict_do_nothing:
        sql += " ON CONFLICT DO NOTHING"

    try:
        execute_values(cursor, sql, rows_list, page_size=page_size)
    except Exception as e:
        raise BatchInsertError(str(e)) from e

    return InsertResult(inserted_rows=len(rows_list))
