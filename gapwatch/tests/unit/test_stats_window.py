from __future__ import annotations

from datetime import datetime, timedelta, timezone

from gapwatch.services.stats import start_of_day, window_start


NOW = datetime(2026, 3, 10, 15, 45, tzinfo=timezone.utc)


def test_start_of_day_is_midnight_utc() -> None:
    local = NOW.astimezone(timezone(timedelta(hours=-5)))
    assert start_of_day(local) == datetime(2026, 3, 10, tzinfo=timezone.utc)


def test_window_counts_back_from_midnight() -> None:
    assert window_start(7, 30, NOW) == datetime(2026, 3, 3, tzinfo=timezone.utc)


def test_non_positive_window_uses_default() -> None:
    assert window_start(0, 30, NOW) == datetime(2026, 2, 8, tzinfo=timezone.utc)
    assert window_start(-3, 2, NOW) == datetime(2026, 3, 8, tzinfo=timezone.utc)
