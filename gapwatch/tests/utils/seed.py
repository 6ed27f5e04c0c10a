from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import select

from gapwatch.domain.models import (
    HrdPacketGap,
    Replay,
    ReplayJob,
    ReplayStatus,
    Variable,
    VmuPacketGap,
)
from gapwatch.persistence.db import SessionLocal


STAGES = (("pending", 0), ("processing", 1), ("completed", 2), ("cancelled", 3))

BASE_TIME = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


async def seed_statuses() -> dict[str, int]:
    async with SessionLocal() as session:
        session.add_all(ReplayStatus(name=name, workflow=workflow) for name, workflow in STAGES)
        await session.commit()
        result = await session.execute(select(ReplayStatus.name, ReplayStatus.id))
        return {name: status_id for name, status_id in result.all()}


def _gap_fields(detected: datetime, overrides: dict[str, Any]) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "timestamp": detected,
        "last_timestamp": detected - timedelta(seconds=10),
        "last_sequence_count": 100,
        "next_timestamp": detected - timedelta(seconds=4),
        "next_sequence_count": 110,
        "corrupted": False,
        "completed": False,
    }
    fields.update(overrides)
    return fields


async def add_hrd_gap(detected: datetime = BASE_TIME, **overrides: Any) -> int:
    overrides.setdefault("channel", "vic1")
    async with SessionLocal() as session:
        row = HrdPacketGap(**_gap_fields(detected, overrides))
        session.add(row)
        await session.commit()
        return row.id


async def add_vmu_gap(detected: datetime = BASE_TIME, **overrides: Any) -> int:
    overrides.setdefault("source", 1)
    overrides.setdefault("phase", "realtime")
    async with SessionLocal() as session:
        row = VmuPacketGap(**_gap_fields(detected, overrides))
        session.add(row)
        await session.commit()
        return row.id


async def add_replay(
    *history: tuple[str, datetime],
    registered: datetime = BASE_TIME,
    priority: int = 0,
) -> int:
    # Insert a replay with an explicit status history, bypassing the lifecycle rules.
    async with SessionLocal() as session:
        statuses = dict((await session.execute(select(ReplayStatus.name, ReplayStatus.id))).all())
        replay = Replay(
            timestamp=registered,
            startdate=registered - timedelta(hours=2),
            enddate=registered - timedelta(hours=1),
            priority=priority,
        )
        session.add(replay)
        await session.flush()
        for index, (name, when) in enumerate(history):
            session.add(
                ReplayJob(
                    timestamp=when,
                    replay_id=replay.id,
                    replay_status_id=statuses[name],
                    text=f"{name} #{index}",
                )
            )
        await session.commit()
        return replay.id


async def add_variable(name: str, value: str, allowed: list[str], hazardous: bool = False) -> int:
    async with SessionLocal() as session:
        row = Variable(name=name, value=value, range_json=allowed, hazardous=hazardous)
        session.add(row)
        await session.commit()
        return row.id
