from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import delete, func, select

from gapwatch.core.errors import EmptyResultError, InternalError, NotFoundError, QueryError
from gapwatch.domain.models import Replay as ReplayRow
from gapwatch.domain.models import ReplayJob, ReplayStatus
from gapwatch.domain.records import NewReplay, Period
from gapwatch.persistence.db import SessionLocal
from gapwatch.persistence.db_store import DBStore
from gapwatch.services.criteria import Criteria
from gapwatch.services.pagination import OrderingPolicy
from gapwatch.services.replays import ReplayManager
from gapwatch.tests.utils.seed import BASE_TIME, add_hrd_gap, add_replay, add_vmu_gap


def _manager() -> ReplayManager:
    return ReplayManager(DBStore(SessionLocal), OrderingPolicy("timestamp"))


def _period() -> Period:
    return Period(starts=BASE_TIME - timedelta(hours=1), ends=BASE_TIME)


async def _count(model) -> int:
    async with SessionLocal() as session:
        return int((await session.execute(select(func.count()).select_from(model))).scalar() or 0)


@pytest.mark.asyncio
async def test_register_starts_in_initial_stage() -> None:
    manager = _manager()
    replay = await manager.register(NewReplay(period=_period(), priority=3, comment="operator request"))
    assert replay.status == "pending"
    assert replay.comment == "operator request"
    assert replay.priority == 3
    assert replay.cancellable is True
    assert replay.period.starts == BASE_TIME - timedelta(hours=1)
    assert await _count(ReplayJob) == 1


@pytest.mark.asyncio
async def test_register_normalizes_offsets_to_utc() -> None:
    offset = timezone(timedelta(hours=2))
    period = Period(
        starts=datetime(2026, 3, 1, 10, tzinfo=offset),
        ends=datetime(2026, 3, 1, 11, tzinfo=offset),
    )
    replay = await _manager().register(NewReplay(period=period))
    assert replay.period.starts == datetime(2026, 3, 1, 8, tzinfo=timezone.utc)
    assert replay.period.starts.utcoffset() == timedelta(0)


@pytest.mark.asyncio
async def test_register_rejects_invalid_period() -> None:
    manager = _manager()
    with pytest.raises(QueryError, match="invalid period"):
        await manager.register(NewReplay(period=Period(starts=BASE_TIME, ends=BASE_TIME - timedelta(1))))
    with pytest.raises(QueryError):
        await manager.register(NewReplay(period=Period(starts=BASE_TIME)))
    assert await _count(ReplayRow) == 0


@pytest.mark.asyncio
async def test_register_without_workflow_writes_nothing() -> None:
    async with SessionLocal() as session:
        await session.execute(delete(ReplayStatus))
        await session.commit()
    with pytest.raises(InternalError):
        await _manager().register(NewReplay(period=_period()))
    assert await _count(ReplayRow) == 0
    assert await _count(ReplayJob) == 0


@pytest.mark.asyncio
async def test_cancel_appends_terminal_status_once() -> None:
    manager = _manager()
    replay = await manager.register(NewReplay(period=_period(), comment="queued"))
    cancelled = await manager.cancel(replay.id, "no longer needed")
    assert cancelled.status == "cancelled"
    assert cancelled.comment == "no longer needed"
    assert cancelled.cancellable is False

    with pytest.raises(QueryError, match="already cancelled"):
        await manager.cancel(replay.id, "again")
    assert await _count(ReplayJob) == 2


@pytest.mark.asyncio
async def test_cancel_unknown_replay_is_not_found() -> None:
    with pytest.raises(NotFoundError):
        await _manager().cancel(404, "")


@pytest.mark.asyncio
async def test_current_status_prefers_highest_workflow() -> None:
    # A later but lower-ordinal row does not override the terminal stage.
    replay_id = await add_replay(
        ("pending", BASE_TIME),
        ("cancelled", BASE_TIME + timedelta(minutes=5)),
        ("processing", BASE_TIME + timedelta(minutes=10)),
    )
    replay = await _manager().fetch_detail(replay_id)
    assert replay.status == "cancelled"
    assert replay.comment == "cancelled #1"


@pytest.mark.asyncio
async def test_update_priority_round_trip() -> None:
    manager = _manager()
    replay = await manager.register(NewReplay(period=_period()))
    updated = await manager.update_priority(replay.id, 9)
    assert updated.priority == 9
    assert (await manager.fetch_detail(replay.id)).priority == 9
    with pytest.raises(NotFoundError):
        await manager.update_priority(999, 1)


@pytest.mark.asyncio
async def test_fetch_detail_of_unknown_replay_is_empty() -> None:
    with pytest.raises(EmptyResultError):
        await _manager().fetch_detail(12345)


@pytest.mark.asyncio
async def test_linked_gap_counts() -> None:
    replay_id = await add_replay(("pending", BASE_TIME))
    await add_hrd_gap(replay_id=replay_id, corrupted=True)
    await add_hrd_gap(replay_id=replay_id)
    await add_vmu_gap(replay_id=replay_id)
    await add_hrd_gap()
    replay = await _manager().fetch_detail(replay_id)
    assert replay.corrupted == 1
    assert replay.missing == 2


@pytest.mark.asyncio
async def test_list_filters_by_derived_status() -> None:
    manager = _manager()
    first = await manager.register(NewReplay(period=_period()))
    second = await manager.register(NewReplay(period=_period()))
    await manager.cancel(second.id, "")

    page = await manager.list_replays(Criteria(status="cancelled"))
    assert page.total == 1
    assert [item.id for item in page.items] == [second.id]

    page = await manager.list_replays(Criteria(limit=1, order_field="id"))
    assert page.total == 2
    assert [item.id for item in page.items] == [second.id]

    page = await manager.list_replays(Criteria(limit=1, page_index=1, order_field="id"))
    assert [item.id for item in page.items] == [first.id]

    with pytest.raises(QueryError):
        await manager.list_replays(Criteria(order_field="bogus"))


@pytest.mark.asyncio
async def test_list_statuses_counts_history_rows() -> None:
    manager = _manager()
    replay = await manager.register(NewReplay(period=_period()))
    await manager.register(NewReplay(period=_period()))
    await manager.cancel(replay.id, "")

    statuses = {info.name: info for info in await manager.list_statuses()}
    assert statuses["pending"].count == 2
    assert statuses["cancelled"].count == 1
    assert statuses["processing"].count == 0
    assert statuses["cancelled"].order == 3
