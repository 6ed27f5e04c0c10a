from __future__ import annotations

from datetime import timedelta

import pytest

from gapwatch.core.errors import EmptyResultError, QueryError
from gapwatch.domain.records import Period
from gapwatch.persistence.db import SessionLocal
from gapwatch.persistence.db_store import DBStore
from gapwatch.services.archives import GapArchive
from gapwatch.services.criteria import ORDER_ASC, Criteria
from gapwatch.services.pagination import OrderingPolicy
from gapwatch.tests.utils.seed import BASE_TIME, add_hrd_gap, add_vmu_gap


def _archive() -> GapArchive:
    return GapArchive(DBStore(SessionLocal), OrderingPolicy("timestamp"))


@pytest.mark.asyncio
async def test_hrd_listing_respects_flags_and_channel() -> None:
    clean = await add_hrd_gap(BASE_TIME, channel="vic1")
    corrupted = await add_hrd_gap(BASE_TIME + timedelta(hours=1), channel="vic1", corrupted=True)
    await add_hrd_gap(BASE_TIME + timedelta(hours=2), channel="vic2")
    archive = _archive()

    page = await archive.list_hrd(Criteria(channel="vic1"))
    assert page.total == 1
    assert [gap.id for gap in page.items] == [clean]

    page = await archive.list_hrd(Criteria(channel="vic1", corrupted=True))
    assert page.total == 2
    assert [gap.id for gap in page.items] == [corrupted, clean]


@pytest.mark.asyncio
async def test_hrd_listing_by_period_and_page() -> None:
    ids = [await add_hrd_gap(BASE_TIME + timedelta(hours=offset)) for offset in range(5)]
    archive = _archive()

    period = Period(starts=BASE_TIME + timedelta(hours=1), ends=BASE_TIME + timedelta(hours=3))
    page = await archive.list_hrd(Criteria(period=period, order_direction=ORDER_ASC))
    assert [gap.id for gap in page.items] == ids[1:4]

    page = await archive.list_hrd(Criteria(limit=2, page_index=1, order_direction=ORDER_ASC))
    assert page.total == 5
    assert [gap.id for gap in page.items] == ids[2:4]

    page = await archive.list_hrd(Criteria(period=Period(ends=BASE_TIME)))
    assert [gap.id for gap in page.items] == ids[:1]


@pytest.mark.asyncio
async def test_vmu_listing_filters_source_and_record() -> None:
    match = await add_vmu_gap(source=2, phase="playback")
    await add_vmu_gap(source=2, phase="realtime")
    await add_vmu_gap(source=1, phase="playback")
    archive = _archive()

    page = await archive.list_vmu(Criteria(source="2", record="playback"))
    assert [gap.id for gap in page.items] == [match]
    assert page.items[0].record_phase == "playback"
    assert page.items[0].source == 2

    with pytest.raises(QueryError):
        await archive.list_vmu(Criteria(source="two"))


@pytest.mark.asyncio
async def test_gap_detail_and_summaries() -> None:
    gap_id = await add_hrd_gap(channel="lrsd", last_sequence_count=7, next_sequence_count=9)
    await add_hrd_gap(channel="vic1")
    await add_hrd_gap(channel="vic1")
    await add_vmu_gap(source=3, phase="playback")
    archive = _archive()

    gap = await archive.hrd_detail(gap_id)
    assert gap.channel == "lrsd"
    assert gap.first_sequence == 7
    assert gap.last_sequence == 9
    assert gap.detected_at == BASE_TIME

    with pytest.raises(EmptyResultError):
        await archive.vmu_detail(9999)

    channels = [(info.channel, info.count) for info in await archive.channels()]
    assert channels == [("lrsd", 1), ("vic1", 2)]
    assert [(info.source, info.count) for info in await archive.sources()] == [(3, 1)]
    assert [(info.record, info.count) for info in await archive.records()] == [("playback", 1)]


@pytest.mark.asyncio
async def test_empty_listing_is_not_an_error() -> None:
    page = await _archive().list_hrd(Criteria(channel="none"))
    assert page.total == 0
    assert page.items == []
