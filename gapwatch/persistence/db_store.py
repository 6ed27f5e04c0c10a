from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, AsyncIterator, Awaitable, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gapwatch.core.errors import EmptyResultError, InternalError
from gapwatch.domain.models import HrdPacketGap, VmuPacketGap
from gapwatch.domain.records import (
    ChannelInfo,
    HRDGap,
    ItemInfo,
    JobStatus,
    NewReplay,
    Overview,
    Page,
    Period,
    RecordInfo,
    Replay,
    SourceInfo,
    StatusInfo,
    Variable,
    VMUGap,
    WorkflowBounds,
    WorkflowStage,
    as_utc,
)
from gapwatch.persistence.repos import gaps as gaps_repo
from gapwatch.persistence.repos import replays as replays_repo
from gapwatch.persistence.repos import variables as variables_repo
from gapwatch.persistence.store import ReplayWriter, Store
from gapwatch.services.pagination import Pagination
from gapwatch.services.predicates import Predicate


logger = logging.getLogger(__name__)


def _hrd_gap(row: HrdPacketGap) -> HRDGap:
    return HRDGap(
        id=row.id,
        detected_at=as_utc(row.timestamp),
        range_start=as_utc(row.last_timestamp),
        first_sequence=row.last_sequence_count,
        range_end=as_utc(row.next_timestamp),
        last_sequence=row.next_sequence_count,
        channel=row.channel,
        replay_id=row.replay_id,
        completed=bool(row.completed),
    )


def _vmu_gap(row: VmuPacketGap) -> VMUGap:
    return VMUGap(
        id=row.id,
        detected_at=as_utc(row.timestamp),
        range_start=as_utc(row.last_timestamp),
        first_sequence=row.last_sequence_count,
        range_end=as_utc(row.next_timestamp),
        last_sequence=row.next_sequence_count,
        source=row.source,
        record_phase=row.phase,
        replay_id=row.replay_id,
        completed=bool(row.completed),
    )


def _replay(row: Any) -> Replay:
    # Terminal replays (and replays without history) can no longer be cancelled.
    cancellable = (
        row.workflow is not None
        and row.max_workflow is not None
        and row.workflow < row.max_workflow
    )
    return Replay(
        id=row.id,
        registered_at=as_utc(row.timestamp),
        period=Period(starts=as_utc(row.startdate), ends=as_utc(row.enddate)),
        priority=row.priority,
        comment=row.comment or "",
        status=row.status or "",
        automatic=bool(row.automatic),
        cancellable=cancellable,
        corrupted=int(row.corrupted or 0),
        missing=int(row.missing or 0),
    )


def _variable(row: Any) -> Variable:
    return Variable(
        id=row.id,
        name=row.name,
        value=row.value,
        allowed_range=[str(item) for item in (row.range_json or [])],
        hazardous=bool(row.hazardous),
    )


def _stage(row: Any) -> WorkflowStage:
    return WorkflowStage(id=row.id, name=row.name, workflow=row.workflow)


class _SessionWriter:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def insert_replay(self, replay: NewReplay) -> int:
        return await replays_repo.insert_replay(self._session, replay)

    async def append_status(self, replay_id: int, status_id: int, text: str) -> None:
        await replays_repo.append_status(self._session, replay_id, status_id, text)

    async def update_priority(self, replay_id: int, priority: int) -> bool:
        return await replays_repo.update_priority(self._session, replay_id, priority) > 0

    async def update_variable(self, variable_id: int, value: str) -> bool:
        return await variables_repo.update_value(self._session, variable_id, value) > 0


class DBStore(Store):
    """Relational backend reached through SQLAlchemy async sessions."""

    name = "database"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[AsyncSession]:
        # Wrap driver failures with context so the API can classify them.
        async with self._session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as exc:
                raise InternalError(f"database error while {action}") from exc

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[ReplayWriter]:
        async with self._session_factory() as session:
            try:
                # Commits on clean exit; any exception rolls every statement back.
                async with session.begin():
                    yield _SessionWriter(session)
            except SQLAlchemyError as exc:
                raise InternalError("database error while writing") from exc

    async def list_hrd_gaps(self, predicate: Predicate | None, pagination: Pagination) -> Page[HRDGap]:
        async with self._session("listing hrd gaps") as session:
            total = await gaps_repo.count_gaps(session, HrdPacketGap, predicate)
            rows = await gaps_repo.list_gaps(session, HrdPacketGap, predicate, pagination)
        return Page(total=total, items=[_hrd_gap(row) for row in rows])

    async def list_vmu_gaps(self, predicate: Predicate | None, pagination: Pagination) -> Page[VMUGap]:
        async with self._session("listing vmu gaps") as session:
            total = await gaps_repo.count_gaps(session, VmuPacketGap, predicate)
            rows = await gaps_repo.list_gaps(session, VmuPacketGap, predicate, pagination)
        return Page(total=total, items=[_vmu_gap(row) for row in rows])

    async def get_hrd_gap(self, gap_id: int) -> HRDGap:
        async with self._session("fetching hrd gap") as session:
            row = await gaps_repo.get_gap(session, HrdPacketGap, gap_id)
        if row is None:
            raise EmptyResultError(f"hrd gap {gap_id}: no such gap")
        return _hrd_gap(row)

    async def get_vmu_gap(self, gap_id: int) -> VMUGap:
        async with self._session("fetching vmu gap") as session:
            row = await gaps_repo.get_gap(session, VmuPacketGap, gap_id)
        if row is None:
            raise EmptyResultError(f"vmu gap {gap_id}: no such gap")
        return _vmu_gap(row)

    async def list_channels(self) -> list[ChannelInfo]:
        async with self._session("listing channels") as session:
            rows = await gaps_repo.count_by_channel(session)
        return [ChannelInfo(channel=row.channel, count=int(row.total)) for row in rows]

    async def list_sources(self) -> list[SourceInfo]:
        async with self._session("listing sources") as session:
            rows = await gaps_repo.count_by_source(session)
        return [SourceInfo(source=int(row.source), count=int(row.total)) for row in rows]

    async def list_records(self) -> list[RecordInfo]:
        async with self._session("listing records") as session:
            rows = await gaps_repo.count_by_phase(session)
        return [RecordInfo(record=row.phase, count=int(row.total)) for row in rows]

    async def list_replays(self, predicate: Predicate | None, pagination: Pagination) -> Page[Replay]:
        async with self._session("listing replays") as session:
            total = await replays_repo.count_replays(session, predicate)
            rows = await replays_repo.list_replays(session, predicate, pagination)
        return Page(total=total, items=[_replay(row) for row in rows])

    async def get_replay(self, replay_id: int) -> Replay:
        async with self._session("fetching replay") as session:
            row = await replays_repo.get_replay(session, replay_id)
        if row is None:
            raise EmptyResultError(f"replay {replay_id}: no such replay")
        return _replay(row)

    async def replay_exists(self, replay_id: int) -> bool:
        async with self._session("looking up replay") as session:
            return await replays_repo.replay_exists(session, replay_id)

    async def workflow_bounds(self) -> WorkflowBounds:
        async with self._session("loading replay workflow") as session:
            initial = await replays_repo.get_stage(session, terminal=False)
            cancelled = await replays_repo.get_stage(session, terminal=True)
        if initial is None or cancelled is None:
            raise InternalError("replay workflow has no status defined")
        return WorkflowBounds(initial=_stage(initial), cancelled=_stage(cancelled))

    async def current_workflow(self, replay_id: int) -> int | None:
        async with self._session("loading replay status") as session:
            return await replays_repo.current_workflow(session, replay_id)

    async def list_statuses(self) -> list[StatusInfo]:
        async with self._session("listing replay statuses") as session:
            rows = await replays_repo.list_statuses(session)
        return [
            StatusInfo(id=row.id, name=row.name, order=row.workflow, count=int(row.count))
            for row in rows
        ]

    async def replay_stats(self, since: datetime) -> list[JobStatus]:
        async with self._session("computing replay statistics") as session:
            rows = await replays_repo.list_jobs_since(session, since)
        counts: dict[tuple[str, date], int] = defaultdict(int)
        for row in rows:
            counts[(row.name, as_utc(row.timestamp).date())] += 1
        return [
            JobStatus(status=status, when=day, count=count)
            for (status, day), count in sorted(counts.items(), key=lambda item: (item[0][1], item[0][0]))
        ]

    async def item_stats(self, since: datetime) -> list[ItemInfo]:
        buckets: dict[tuple[date, str], list[int]] = defaultdict(lambda: [0, 0])
        async with self._session("computing gap statistics") as session:
            for origin, model in (("hrd", HrdPacketGap), ("vmu", VmuPacketGap)):
                for row in await gaps_repo.list_detected_since(session, model, since):
                    bucket = buckets[(as_utc(row.timestamp).date(), origin)]
                    bucket[0] += 1
                    span = as_utc(row.next_timestamp) - as_utc(row.last_timestamp)
                    bucket[1] += max(0, int(span.total_seconds()))
        return [
            ItemInfo(label="gaps", origin=origin, when=day, count=count, duration=duration)
            for (day, origin), (count, duration) in sorted(buckets.items())
        ]

    async def overview(self, since: datetime, now: datetime) -> Overview:
        oldest = await self._degraded("pending_duration", replays_repo.oldest_pending)
        pending = 0
        if oldest is not None:
            pending = max(0, int((now - as_utc(oldest)).total_seconds()))
        return Overview(
            replays_today=await self._count(
                "replays", lambda s: replays_repo.count_registered_since(s, since)
            ),
            pending_seconds=pending,
            hrd_gaps_today=await self._count(
                "hrd_gaps", lambda s: gaps_repo.count_detected_since(s, HrdPacketGap, since)
            ),
            vmu_gaps_today=await self._count(
                "vmu_gaps", lambda s: gaps_repo.count_detected_since(s, VmuPacketGap, since)
            ),
        )

    async def _degraded(
        self, label: str, fetch: Callable[[AsyncSession], Awaitable[Any]]
    ) -> Any:
        # Auxiliary statistics report nothing rather than failing the request.
        try:
            async with self._session_factory() as session:
                return await fetch(session)
        except SQLAlchemyError as exc:
            logger.warning("overview_counter_failed counter=%s", label, exc_info=exc)
            return None

    async def _count(self, label: str, fetch: Callable[[AsyncSession], Awaitable[int]]) -> int:
        return int(await self._degraded(label, fetch) or 0)

    async def list_variables(self) -> list[Variable]:
        async with self._session("listing variables") as session:
            rows = await variables_repo.list_variables(session)
        return [_variable(row) for row in rows]

    async def get_variable(self, variable_id: int) -> Variable:
        async with self._session("fetching variable") as session:
            row = await variables_repo.get_variable(session, variable_id)
        if row is None:
            raise EmptyResultError(f"variable {variable_id}: no such variable")
        return _variable(row)
