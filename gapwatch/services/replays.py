from __future__ import annotations

import logging
from dataclasses import replace

from gapwatch.core.errors import NotFoundError, QueryError
from gapwatch.domain.records import (
    NewReplay,
    Page,
    Period,
    Replay,
    StatusInfo,
    as_utc,
)
from gapwatch.persistence.store import Store
from gapwatch.services.criteria import Criteria
from gapwatch.services.pagination import OrderingPolicy
from gapwatch.services.predicates import Scope, build_predicate


logger = logging.getLogger(__name__)


class ReplayManager:
    """Replay lifecycle: registration, cancellation, reprioritization and reads.

    Status is never written on the replay itself. Every transition appends a
    row to the status history and the current status is derived from it.
    """

    def __init__(self, store: Store, policy: OrderingPolicy) -> None:
        self._store = store
        self._policy = policy

    async def list_replays(self, criteria: Criteria) -> Page[Replay]:
        predicate = build_predicate(criteria, Scope.REPLAY)
        return await self._store.list_replays(predicate, self._policy.resolve(criteria))

    async def fetch_detail(self, replay_id: int) -> Replay:
        # Optional capability: backends without it raise NotImplementedCapability.
        return await self._store.get_replay(replay_id)

    async def register(self, replay: NewReplay) -> Replay:
        period = Period(starts=as_utc(replay.period.starts), ends=as_utc(replay.period.ends))
        if not period.is_valid():
            raise QueryError("invalid period")
        replay = replace(replay, period=period)
        bounds = await self._store.workflow_bounds()
        async with self._store.transaction() as tx:
            replay_id = await tx.insert_replay(replay)
            await tx.append_status(replay_id, bounds.initial.id, replay.comment)
        logger.info("replay_registered replay_id=%s status=%s", replay_id, bounds.initial.name)
        return await self._store.get_replay(replay_id)

    async def cancel(self, replay_id: int, comment: str) -> Replay:
        bounds = await self._store.workflow_bounds()
        if not await self._store.replay_exists(replay_id):
            raise NotFoundError(f"replay {replay_id}: no such replay")
        # Check-then-act: the check runs outside the write transaction, so two
        # concurrent cancellations may both append a terminal row.
        if await self._store.current_workflow(replay_id) == bounds.cancelled.workflow:
            raise QueryError("replay job already cancelled")
        async with self._store.transaction() as tx:
            await tx.append_status(replay_id, bounds.cancelled.id, comment)
        logger.info("replay_cancelled replay_id=%s", replay_id)
        return await self._store.get_replay(replay_id)

    async def update_priority(self, replay_id: int, priority: int) -> Replay:
        async with self._store.transaction() as tx:
            if not await tx.update_priority(replay_id, priority):
                raise NotFoundError(f"replay {replay_id}: no such replay")
        logger.info("replay_priority_updated replay_id=%s priority=%s", replay_id, priority)
        return await self._store.get_replay(replay_id)

    async def list_statuses(self) -> list[StatusInfo]:
        return await self._store.list_statuses()
