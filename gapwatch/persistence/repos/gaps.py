from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Row, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from gapwatch.domain.models import HrdPacketGap, VmuPacketGap
from gapwatch.persistence.hooks import execute
from gapwatch.services.pagination import Pagination, apply_pagination
from gapwatch.services.predicates import Predicate, to_clause


GapModel = type[HrdPacketGap] | type[VmuPacketGap]


def _columns(model: GapModel) -> dict[str, ColumnElement[Any]]:
    # Filter and sort names map one-to-one onto the gap table columns.
    return {column.key: column for column in model.__table__.columns}


def _scope(model: GapModel) -> str:
    return "hrd" if model is HrdPacketGap else "vmu"


async def count_gaps(session: AsyncSession, model: GapModel, predicate: Predicate | None) -> int:
    stmt = select(func.count(model.id))
    if predicate is not None:
        stmt = stmt.where(to_clause(predicate, _columns(model)))
    result = await execute(session, stmt, scope=_scope(model))
    return int(result.scalar() or 0)


async def list_gaps(
    session: AsyncSession,
    model: GapModel,
    predicate: Predicate | None,
    pagination: Pagination,
) -> list[Any]:
    columns = _columns(model)
    stmt = select(model)
    if predicate is not None:
        stmt = stmt.where(to_clause(predicate, columns))
    stmt = apply_pagination(stmt, pagination, columns, tiebreak=model.id)
    result = await execute(session, stmt, scope=_scope(model))
    return list(result.scalars().all())


async def get_gap(session: AsyncSession, model: GapModel, gap_id: int) -> Any | None:
    result = await execute(session, select(model).where(model.id == gap_id), scope=_scope(model))
    return result.scalar_one_or_none()


async def count_detected_since(session: AsyncSession, model: GapModel, since: datetime) -> int:
    result = await execute(
        session,
        select(func.count(model.id)).where(model.timestamp >= since),
        scope=_scope(model),
    )
    return int(result.scalar() or 0)


async def list_detected_since(session: AsyncSession, model: GapModel, since: datetime) -> list[Row[Any]]:
    # Raw rows for per-day statistics; aggregation happens in Python to stay dialect neutral.
    stmt = (
        select(model.timestamp, model.last_timestamp, model.next_timestamp)
        .where(model.timestamp >= since)
        .order_by(model.timestamp)
    )
    result = await execute(session, stmt, scope=_scope(model))
    return list(result.all())


async def count_by_channel(session: AsyncSession) -> list[Row[Any]]:
    stmt = (
        select(HrdPacketGap.channel, func.count(HrdPacketGap.id).label("total"))
        .group_by(HrdPacketGap.channel)
        .order_by(HrdPacketGap.channel)
    )
    result = await execute(session, stmt, scope="hrd")
    return list(result.all())


async def count_by_source(session: AsyncSession) -> list[Row[Any]]:
    stmt = (
        select(VmuPacketGap.source, func.count(VmuPacketGap.id).label("total"))
        .group_by(VmuPacketGap.source)
        .order_by(VmuPacketGap.source)
    )
    result = await execute(session, stmt, scope="vmu")
    return list(result.all())


async def count_by_phase(session: AsyncSession) -> list[Row[Any]]:
    stmt = (
        select(VmuPacketGap.phase, func.count(VmuPacketGap.id).label("total"))
        .group_by(VmuPacketGap.phase)
        .order_by(VmuPacketGap.phase)
    )
    result = await execute(session, stmt, scope="vmu")
    return list(result.all())
