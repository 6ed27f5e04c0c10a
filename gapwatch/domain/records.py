from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Generic, TypeVar


T = TypeVar("T")


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; stored values are always UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Period:
    starts: datetime | None = None
    ends: datetime | None = None

    def is_valid(self) -> bool:
        # Registration needs a closed interval; open ends are only valid as filters.
        if self.starts is None or self.ends is None:
            return False
        return self.starts <= self.ends


@dataclass(frozen=True)
class Page(Generic[T]):
    total: int
    items: list[T]


@dataclass(frozen=True)
class HRDGap:
    id: int
    detected_at: datetime
    range_start: datetime
    first_sequence: int
    range_end: datetime
    last_sequence: int
    channel: str
    replay_id: int | None
    completed: bool


@dataclass(frozen=True)
class VMUGap:
    id: int
    detected_at: datetime
    range_start: datetime
    first_sequence: int
    range_end: datetime
    last_sequence: int
    source: int
    record_phase: str
    replay_id: int | None
    completed: bool


@dataclass(frozen=True)
class Replay:
    id: int
    registered_at: datetime
    period: Period
    priority: int = 0
    comment: str = ""
    status: str = ""
    automatic: bool = False
    cancellable: bool = False
    corrupted: int = 0
    missing: int = 0


@dataclass(frozen=True)
class NewReplay:
    """Caller-supplied fields of a replay to register."""

    period: Period
    priority: int = 0
    comment: str = ""
    automatic: bool = False


@dataclass(frozen=True)
class WorkflowStage:
    id: int
    name: str
    workflow: int


@dataclass(frozen=True)
class WorkflowBounds:
    initial: WorkflowStage
    cancelled: WorkflowStage


@dataclass(frozen=True)
class Variable:
    id: int
    name: str
    value: str
    allowed_range: list[str] = field(default_factory=list)
    hazardous: bool = False


@dataclass(frozen=True)
class ChannelInfo:
    channel: str
    count: int


@dataclass(frozen=True)
class SourceInfo:
    source: int
    count: int


@dataclass(frozen=True)
class RecordInfo:
    record: str
    count: int


@dataclass(frozen=True)
class StatusInfo:
    id: int
    name: str
    order: int
    count: int


@dataclass(frozen=True)
class JobStatus:
    status: str
    when: date
    count: int


@dataclass(frozen=True)
class ItemInfo:
    label: str
    origin: str
    when: date
    count: int
    duration: int


@dataclass(frozen=True)
class Overview:
    replays_today: int
    pending_seconds: int
    hrd_gaps_today: int
    vmu_gaps_today: int
