from __future__ import annotations

from datetime import datetime, timedelta, timezone

from gapwatch.domain.records import ItemInfo, JobStatus, Overview
from gapwatch.persistence.store import Store


def start_of_day(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


def window_start(days: int, default_days: int, now: datetime | None = None) -> datetime:
    # Non-positive windows fall back to the configured default, counted back from midnight UTC.
    if days <= 0:
        days = default_days
    return start_of_day(now) - timedelta(days=days)


class StatsService:
    def __init__(self, store: Store, default_days: int) -> None:
        self._store = store
        self._default_days = default_days

    async def overview(self, now: datetime | None = None) -> Overview:
        now = now or datetime.now(timezone.utc)
        return await self._store.overview(start_of_day(now), now)

    async def items(self, days: int) -> list[ItemInfo]:
        return await self._store.item_stats(window_start(days, self._default_days))

    async def replays(self, days: int) -> list[JobStatus]:
        return await self._store.replay_stats(window_start(days, self._default_days))
