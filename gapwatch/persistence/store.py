from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Protocol

from gapwatch.core.config import Settings
from gapwatch.core.errors import NotImplementedCapability
from gapwatch.domain.records import (
    ChannelInfo,
    HRDGap,
    ItemInfo,
    JobStatus,
    NewReplay,
    Overview,
    Page,
    RecordInfo,
    Replay,
    SourceInfo,
    StatusInfo,
    Variable,
    VMUGap,
    WorkflowBounds,
)
from gapwatch.services.pagination import Pagination
from gapwatch.services.predicates import Predicate


STORE_DATABASE = "database"
STORE_FILES = "files"


def _unsupported(store: "Store", operation: str) -> NotImplementedCapability:
    return NotImplementedCapability(f"{operation}: not supported by the {store.name} store")


class ReplayWriter(Protocol):
    """Mutations available inside one storage transaction."""

    async def insert_replay(self, replay: NewReplay) -> int:
        ...

    async def append_status(self, replay_id: int, status_id: int, text: str) -> None:
        ...

    async def update_priority(self, replay_id: int, priority: int) -> bool:
        ...

    async def update_variable(self, variable_id: int, value: str) -> bool:
        ...


class Store:
    """Storage capability interface shared by every backend.

    Backends override what they support; anything left alone raises
    NotImplementedCapability so callers can surface a not-implemented status.
    Core services only talk to this interface.
    """

    name = "abstract"

    async def list_hrd_gaps(self, predicate: Predicate | None, pagination: Pagination) -> Page[HRDGap]:
        raise _unsupported(self, "list hrd gaps")

    async def list_vmu_gaps(self, predicate: Predicate | None, pagination: Pagination) -> Page[VMUGap]:
        raise _unsupported(self, "list vmu gaps")

    async def get_hrd_gap(self, gap_id: int) -> HRDGap:
        raise _unsupported(self, "hrd gap detail")

    async def get_vmu_gap(self, gap_id: int) -> VMUGap:
        raise _unsupported(self, "vmu gap detail")

    async def list_channels(self) -> list[ChannelInfo]:
        raise _unsupported(self, "list channels")

    async def list_sources(self) -> list[SourceInfo]:
        raise _unsupported(self, "list sources")

    async def list_records(self) -> list[RecordInfo]:
        raise _unsupported(self, "list records")

    async def list_replays(self, predicate: Predicate | None, pagination: Pagination) -> Page[Replay]:
        raise _unsupported(self, "list replays")

    async def get_replay(self, replay_id: int) -> Replay:
        raise _unsupported(self, "replay detail")

    async def replay_exists(self, replay_id: int) -> bool:
        raise _unsupported(self, "replay lookup")

    async def workflow_bounds(self) -> WorkflowBounds:
        raise _unsupported(self, "replay workflow")

    async def current_workflow(self, replay_id: int) -> int | None:
        raise _unsupported(self, "replay workflow")

    async def list_statuses(self) -> list[StatusInfo]:
        raise _unsupported(self, "list replay statuses")

    async def replay_stats(self, since: datetime) -> list[JobStatus]:
        raise _unsupported(self, "replay statistics")

    async def item_stats(self, since: datetime) -> list[ItemInfo]:
        raise _unsupported(self, "gap statistics")

    async def overview(self, since: datetime, now: datetime) -> Overview:
        raise _unsupported(self, "status overview")

    async def list_variables(self) -> list[Variable]:
        raise _unsupported(self, "list variables")

    async def get_variable(self, variable_id: int) -> Variable:
        raise _unsupported(self, "variable detail")

    def transaction(self) -> AbstractAsyncContextManager[ReplayWriter]:
        raise _unsupported(self, "write")


def build_store(settings: Settings) -> Store:
    # Pick the backend once at startup; services never branch on the variant.
    backend = settings.store_backend.strip().lower()
    if backend == STORE_DATABASE:
        from gapwatch.persistence.db_store import DBStore
        from gapwatch.persistence.db import SessionLocal

        return DBStore(SessionLocal)
    if backend == STORE_FILES:
        from gapwatch.persistence.file_store import FileStore

        return FileStore(settings.file_store_dir)
    raise ValueError(f"unknown store backend: {settings.store_backend}")
