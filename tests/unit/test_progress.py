from __future__ import annotations

from unittest.mock import patch

from agency_import.models.import_result import ImportRowOutcome, ImportStatus
from agency_import.services.progress import ProgressTracker, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    with patch('sys.stdout.isatty', return_value=True):
        assert is_tty_enabled() is True

    with patch('sys.stdout.isatty', return_value=False):
        assert is_tty_enabled() is False


class TestProgressTracker:

    def test_init_with_tty_enabled(self):
        with patch('agency_import.services.progress.is_tty_enabled', return_value=True), \
             patch('agency_import.services.progress.tqdm') as mock_tqdm:

            tracker = ProgressTracker(5, description="Importing")

            assert tracker.enabled is True
            mock_tqdm.assert_called_once_with(
                total=5,
                desc="Importing",
                unit="row",
                leave=True,
                ncols=80,
                ascii=True,
            )

    def test_init_with_tty_disabled(self):
        with patch('agency_import.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(5)
            assert tracker.enabled is False
            assert tracker.pbar is None

    def test_advance_counts_statuses(self):
        with patch('agency_import.services.progress.is_tty_enabled', return_value=True), \
             patch('agency_import.services.progress.tqdm') as mock_tqdm:
            bar = mock_tqdm.return_value
            with ProgressTracker(2) as tracker:
                tracker.advance(ImportRowOutcome.created(2, "Acme", "a1"))
                tracker.advance(ImportRowOutcome.failed(3, "Beta", "Could not save agency"))

            assert tracker.counts[ImportStatus.CREATED] == 1
            assert tracker.counts[ImportStatus.FAILED] == 1
            assert bar.update.call_count == 2
            bar.set_postfix.assert_called_with(created=1, skipped=0, failed=1)
            bar.close.assert_called_once()
            assert tracker.pbar is None

    def test_advance_without_tty_only_counts(self):
        with patch('agency_import.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(1)
            tracker.advance(ImportRowOutcome.skipped(2, "Acme", "exists"))
            tracker.close()
            assert tracker.counts[ImportStatus.SKIPPED] == 1
