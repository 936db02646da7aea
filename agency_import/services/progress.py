from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.import_result import ImportRowOutcome, ImportStatus

"""Commit progress display with tqdm (TTY only).

In non-TTY environments (CI, piped output) no bar is created so the log
stream stays free of control sequences.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """One bar over the rows of a commit pass, with created/skipped/failed counters."""

    def __init__(self, total_rows: int, *, description: str = "Importing agencies") -> None:
        self.total_rows = total_rows
        self.description = description
        self.counts = {status: 0 for status in ImportStatus}

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_rows,
                desc=description,
                unit="row",
                leave=True,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, outcome: ImportRowOutcome) -> None:
        """Record one finished row. Usable directly as commit_rows(on_outcome=...)."""
        self.counts[outcome.status] += 1
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            self.set_postfix(**{s.value: n for s, n in self.counts.items()})

    def set_postfix(self, **kwargs: Any) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
