from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Row, Subquery, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from gapwatch.domain.models import (
    HrdPacketGap,
    Replay,
    ReplayJob,
    ReplayStatus,
    VmuPacketGap,
    utc_now,
)
from gapwatch.domain.records import NewReplay
from gapwatch.persistence.hooks import execute
from gapwatch.services.pagination import Pagination, apply_pagination
from gapwatch.services.predicates import Predicate, to_clause


def current_job_id(replay_id: ColumnElement[Any]) -> Any:
    # Current status: highest workflow ordinal, then latest timestamp, then latest row.
    return (
        select(ReplayJob.id)
        .join(ReplayStatus, ReplayStatus.id == ReplayJob.replay_status_id)
        .where(ReplayJob.replay_id == replay_id)
        .order_by(ReplayStatus.workflow.desc(), ReplayJob.timestamp.desc(), ReplayJob.id.desc())
        .limit(1)
        .scalar_subquery()
    )


def _linked_gaps(replay_id: ColumnElement[Any], *, corrupted: bool) -> Any:
    hrd = (
        select(func.count(HrdPacketGap.id))
        .where(HrdPacketGap.replay_id == replay_id, HrdPacketGap.corrupted == corrupted)
        .scalar_subquery()
    )
    vmu = (
        select(func.count(VmuPacketGap.id))
        .where(VmuPacketGap.replay_id == replay_id, VmuPacketGap.corrupted == corrupted)
        .scalar_subquery()
    )
    return hrd + vmu


def replay_list() -> Subquery:
    """Projection of replays with their derived status, comment and gap counts."""
    base = select(
        Replay.id.label("id"),
        Replay.timestamp.label("timestamp"),
        Replay.startdate.label("startdate"),
        Replay.enddate.label("enddate"),
        Replay.priority.label("priority"),
        Replay.automatic.label("automatic"),
        current_job_id(Replay.id).label("job_id"),
    ).subquery("replay_base")
    max_workflow = select(func.max(ReplayStatus.workflow)).correlate(None).scalar_subquery()
    stmt = select(
        base.c.id,
        base.c.timestamp,
        base.c.startdate,
        base.c.enddate,
        base.c.priority,
        func.coalesce(ReplayJob.text, "").label("comment"),
        func.coalesce(ReplayStatus.name, "").label("status"),
        ReplayStatus.workflow.label("workflow"),
        max_workflow.label("max_workflow"),
        base.c.automatic,
        _linked_gaps(base.c.id, corrupted=True).label("corrupted"),
        _linked_gaps(base.c.id, corrupted=False).label("missing"),
    ).select_from(
        base.outerjoin(ReplayJob, ReplayJob.id == base.c.job_id).outerjoin(
            ReplayStatus, ReplayStatus.id == ReplayJob.replay_status_id
        )
    )
    return stmt.subquery("r")


def _columns(projection: Subquery) -> dict[str, ColumnElement[Any]]:
    return {column.key: column for column in projection.c}


async def count_replays(session: AsyncSession, predicate: Predicate | None) -> int:
    projection = replay_list()
    stmt = select(func.count()).select_from(projection)
    if predicate is not None:
        stmt = stmt.where(to_clause(predicate, _columns(projection)))
    result = await execute(session, stmt, scope="replay")
    return int(result.scalar() or 0)


async def list_replays(
    session: AsyncSession,
    predicate: Predicate | None,
    pagination: Pagination,
) -> list[Row[Any]]:
    projection = replay_list()
    columns = _columns(projection)
    stmt = select(projection)
    if predicate is not None:
        stmt = stmt.where(to_clause(predicate, columns))
    stmt = apply_pagination(stmt, pagination, columns, tiebreak=projection.c.id)
    result = await execute(session, stmt, scope="replay")
    return list(result.all())


async def get_replay(session: AsyncSession, replay_id: int) -> Row[Any] | None:
    projection = replay_list()
    result = await execute(
        session, select(projection).where(projection.c.id == replay_id), scope="replay"
    )
    return result.first()


async def replay_exists(session: AsyncSession, replay_id: int) -> bool:
    result = await execute(session, select(Replay.id).where(Replay.id == replay_id), scope="replay")
    return result.scalar_one_or_none() is not None


async def get_stage(session: AsyncSession, *, terminal: bool) -> ReplayStatus | None:
    # Initial stage has the lowest workflow ordinal, the terminal one the highest.
    bound = func.max(ReplayStatus.workflow) if terminal else func.min(ReplayStatus.workflow)
    stmt = (
        select(ReplayStatus)
        .where(ReplayStatus.workflow == select(bound).correlate(None).scalar_subquery())
        .order_by(ReplayStatus.id)
        .limit(1)
    )
    result = await execute(session, stmt, scope="replay_status")
    return result.scalar_one_or_none()


async def current_workflow(session: AsyncSession, replay_id: int) -> int | None:
    stmt = (
        select(ReplayStatus.workflow)
        .join(ReplayJob, ReplayJob.replay_status_id == ReplayStatus.id)
        .where(ReplayJob.replay_id == replay_id)
        .order_by(ReplayStatus.workflow.desc(), ReplayJob.timestamp.desc(), ReplayJob.id.desc())
        .limit(1)
    )
    result = await execute(session, stmt, scope="replay_job")
    return result.scalar_one_or_none()


async def insert_replay(session: AsyncSession, replay: NewReplay) -> int:
    row = Replay(
        timestamp=utc_now(),
        startdate=replay.period.starts,
        enddate=replay.period.ends,
        priority=replay.priority,
        automatic=replay.automatic,
    )
    session.add(row)
    # Flush to obtain the generated identity inside the open transaction.
    await session.flush()
    return row.id


async def append_status(session: AsyncSession, replay_id: int, status_id: int, text: str) -> None:
    session.add(
        ReplayJob(
            timestamp=utc_now(),
            replay_id=replay_id,
            replay_status_id=status_id,
            text=text,
        )
    )
    await session.flush()


async def update_priority(session: AsyncSession, replay_id: int, priority: int) -> int:
    result = await execute(
        session,
        update(Replay).where(Replay.id == replay_id).values(priority=priority),
        scope="replay",
    )
    return int(result.rowcount or 0)


async def list_statuses(session: AsyncSession) -> list[Row[Any]]:
    counts = (
        select(
            ReplayJob.replay_status_id.label("replay_status_id"),
            func.count(ReplayJob.replay_status_id).label("count"),
        )
        .group_by(ReplayJob.replay_status_id)
        .subquery("c")
    )
    stmt = (
        select(
            ReplayStatus.id,
            ReplayStatus.name,
            ReplayStatus.workflow,
            func.coalesce(counts.c.count, 0).label("count"),
        )
        .outerjoin(counts, counts.c.replay_status_id == ReplayStatus.id)
        .order_by(ReplayStatus.workflow, ReplayStatus.id)
    )
    result = await execute(session, stmt, scope="replay_status")
    return list(result.all())


async def list_jobs_since(session: AsyncSession, since: datetime) -> list[Row[Any]]:
    stmt = (
        select(ReplayStatus.name, ReplayJob.timestamp)
        .select_from(ReplayJob)
        .join(ReplayStatus, ReplayStatus.id == ReplayJob.replay_status_id)
        .where(ReplayJob.timestamp >= since)
        .order_by(ReplayJob.timestamp)
    )
    result = await execute(session, stmt, scope="replay_job")
    return list(result.all())


async def count_registered_since(session: AsyncSession, since: datetime) -> int:
    result = await execute(
        session, select(func.count(Replay.id)).where(Replay.timestamp >= since), scope="replay"
    )
    return int(result.scalar() or 0)


async def oldest_pending(session: AsyncSession) -> datetime | None:
    # Registration time of the oldest replay still sitting in the initial stage.
    projection = replay_list()
    min_workflow = select(func.min(ReplayStatus.workflow)).correlate(None).scalar_subquery()
    stmt = select(func.min(projection.c.timestamp)).where(projection.c.workflow == min_workflow)
    result = await execute(session, stmt, scope="replay")
    return result.scalar()
