from __future__ import annotations

from gapwatch.domain.records import ChannelInfo, HRDGap, Page, RecordInfo, SourceInfo, VMUGap
from gapwatch.persistence.store import Store
from gapwatch.services.criteria import Criteria
from gapwatch.services.pagination import OrderingPolicy
from gapwatch.services.predicates import Scope, build_predicate


class GapArchive:
    """Read access to the HRD and VMU gap archives."""

    def __init__(self, store: Store, policy: OrderingPolicy) -> None:
        self._store = store
        self._policy = policy

    async def list_hrd(self, criteria: Criteria) -> Page[HRDGap]:
        predicate = build_predicate(criteria, Scope.HRD_GAP)
        return await self._store.list_hrd_gaps(predicate, self._policy.resolve(criteria))

    async def list_vmu(self, criteria: Criteria) -> Page[VMUGap]:
        predicate = build_predicate(criteria, Scope.VMU_GAP)
        return await self._store.list_vmu_gaps(predicate, self._policy.resolve(criteria))

    async def hrd_detail(self, gap_id: int) -> HRDGap:
        return await self._store.get_hrd_gap(gap_id)

    async def vmu_detail(self, gap_id: int) -> VMUGap:
        return await self._store.get_vmu_gap(gap_id)

    async def channels(self) -> list[ChannelInfo]:
        return await self._store.list_channels()

    async def sources(self) -> list[SourceInfo]:
        return await self._store.list_sources()

    async def records(self) -> list[RecordInfo]:
        return await self._store.list_records()
