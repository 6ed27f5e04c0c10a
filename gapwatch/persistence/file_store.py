from __future__ import annotations

import csv
import logging
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator

from gapwatch.core.errors import EmptyResultError, InternalError, QueryError
from gapwatch.domain.records import (
    ChannelInfo,
    HRDGap,
    Page,
    Period,
    RecordInfo,
    Replay,
    SourceInfo,
    Variable,
    VMUGap,
)
from gapwatch.persistence.store import Store
from gapwatch.services.criteria import parse_bool
from gapwatch.services.pagination import Pagination, sort_rows
from gapwatch.services.predicates import Predicate, matches


logger = logging.getLogger(__name__)

TIME_PATTERN = "%Y-%m-%d %H:%M:%S"

HRD_FILE = "hrdgap"
VMU_FILE = "vmugap"
REPLAY_FILE = "replay"
VARIABLE_FILE = "variables"

GAP_FIELDS = (
    "id",
    "timestamp",
    "last_timestamp",
    "last_sequence_count",
    "next_timestamp",
    "next_sequence_count",
    "replay_id",
    "corrupted",
    "completed",
)
HRD_FIELDS = GAP_FIELDS + ("channel",)
VMU_FIELDS = GAP_FIELDS + ("source", "phase")
REPLAY_FIELDS = (
    "id",
    "timestamp",
    "startdate",
    "enddate",
    "priority",
    "comment",
    "status",
    "automatic",
    "cancellable",
    "corrupted",
    "missing",
)


def _timestamp(raw: str) -> datetime:
    return datetime.strptime(raw, TIME_PATTERN).replace(tzinfo=timezone.utc)


def _optional_int(raw: str | None) -> int | None:
    return int(raw) if raw else None


def _flag(raw: str | None) -> bool:
    return parse_bool(raw, "flag")


def _gap_row(raw: dict[str, str]) -> dict[str, Any]:
    return {
        "id": int(raw["id"]),
        "timestamp": _timestamp(raw["timestamp"]),
        "last_timestamp": _timestamp(raw["last_timestamp"]),
        "last_sequence_count": int(raw["last_sequence_count"]),
        "next_timestamp": _timestamp(raw["next_timestamp"]),
        "next_sequence_count": int(raw["next_sequence_count"]),
        "replay_id": _optional_int(raw.get("replay_id")),
        "corrupted": _flag(raw.get("corrupted")),
        "completed": _flag(raw.get("completed")),
    }


def _hrd_row(raw: dict[str, str]) -> dict[str, Any]:
    row = _gap_row(raw)
    row["channel"] = raw["channel"]
    return row


def _vmu_row(raw: dict[str, str]) -> dict[str, Any]:
    row = _gap_row(raw)
    row["source"] = int(raw["source"])
    row["phase"] = raw["phase"]
    return row


def _replay_row(raw: dict[str, str]) -> dict[str, Any]:
    return {
        "id": int(raw["id"]),
        "timestamp": _timestamp(raw["timestamp"]),
        "startdate": _timestamp(raw["startdate"]),
        "enddate": _timestamp(raw["enddate"]),
        "priority": int(raw.get("priority") or 0),
        "comment": raw.get("comment") or "",
        "status": raw.get("status") or "",
        "automatic": _flag(raw.get("automatic")),
        "cancellable": _flag(raw.get("cancellable")),
        "corrupted": int(raw.get("corrupted") or 0),
        "missing": int(raw.get("missing") or 0),
    }


def _hrd_gap(row: dict[str, Any]) -> HRDGap:
    return HRDGap(
        id=row["id"],
        detected_at=row["timestamp"],
        range_start=row["last_timestamp"],
        first_sequence=row["last_sequence_count"],
        range_end=row["next_timestamp"],
        last_sequence=row["next_sequence_count"],
        channel=row["channel"],
        replay_id=row["replay_id"],
        completed=row["completed"],
    )


def _vmu_gap(row: dict[str, Any]) -> VMUGap:
    return VMUGap(
        id=row["id"],
        detected_at=row["timestamp"],
        range_start=row["last_timestamp"],
        first_sequence=row["last_sequence_count"],
        range_end=row["next_timestamp"],
        last_sequence=row["next_sequence_count"],
        source=row["source"],
        record_phase=row["phase"],
        replay_id=row["replay_id"],
        completed=row["completed"],
    )


def _replay(row: dict[str, Any]) -> Replay:
    return Replay(
        id=row["id"],
        registered_at=row["timestamp"],
        period=Period(starts=row["startdate"], ends=row["enddate"]),
        priority=row["priority"],
        comment=row["comment"],
        status=row["status"],
        automatic=row["automatic"],
        cancellable=row["cancellable"],
        corrupted=row["corrupted"],
        missing=row["missing"],
    )


class FileStore(Store):
    """Read-only backend over tab-separated exports (one header row per file).

    Timestamps use ``YYYY-MM-DD HH:MM:SS`` in UTC. Writes are not supported.
    """

    name = "files"

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)

    def _read(self, name: str, parse: Callable[[dict[str, str]], Any]) -> Iterator[Any]:
        path = self._dir / f"{name}.csv"
        try:
            with path.open(newline="", encoding="utf-8") as handle:
                for raw in csv.DictReader(handle, delimiter="\t"):
                    yield parse(raw)
        except OSError as exc:
            raise InternalError(f"{name}: cannot read {path}") from exc
        except (KeyError, ValueError, QueryError) as exc:
            raise InternalError(f"{name}: malformed row in {path}") from exc

    def _page(
        self,
        name: str,
        parse: Callable[[dict[str, str]], dict[str, Any]],
        fields: tuple[str, ...],
        predicate: Predicate | None,
        pagination: Pagination,
    ) -> tuple[int, list[dict[str, Any]]]:
        rows = [row for row in self._read(name, parse) if matches(predicate, row)]
        return len(rows), sort_rows(rows, pagination, fields)

    async def list_hrd_gaps(self, predicate: Predicate | None, pagination: Pagination) -> Page[HRDGap]:
        total, rows = self._page(HRD_FILE, _hrd_row, HRD_FIELDS, predicate, pagination)
        return Page(total=total, items=[_hrd_gap(row) for row in rows])

    async def list_vmu_gaps(self, predicate: Predicate | None, pagination: Pagination) -> Page[VMUGap]:
        total, rows = self._page(VMU_FILE, _vmu_row, VMU_FIELDS, predicate, pagination)
        return Page(total=total, items=[_vmu_gap(row) for row in rows])

    async def list_channels(self) -> list[ChannelInfo]:
        counts = Counter(row["channel"] for row in self._read(HRD_FILE, _hrd_row))
        return [ChannelInfo(channel=name, count=count) for name, count in sorted(counts.items())]

    async def list_sources(self) -> list[SourceInfo]:
        counts = Counter(row["source"] for row in self._read(VMU_FILE, _vmu_row))
        return [SourceInfo(source=source, count=count) for source, count in sorted(counts.items())]

    async def list_records(self) -> list[RecordInfo]:
        counts = Counter(row["phase"] for row in self._read(VMU_FILE, _vmu_row))
        return [RecordInfo(record=phase, count=count) for phase, count in sorted(counts.items())]

    async def list_replays(self, predicate: Predicate | None, pagination: Pagination) -> Page[Replay]:
        total, rows = self._page(REPLAY_FILE, _replay_row, REPLAY_FIELDS, predicate, pagination)
        return Page(total=total, items=[_replay(row) for row in rows])

    async def get_replay(self, replay_id: int) -> Replay:
        for row in self._read(REPLAY_FILE, _replay_row):
            if row["id"] == replay_id:
                return _replay(row)
        raise EmptyResultError(f"replay {replay_id}: no such replay")

    async def list_variables(self) -> list[Variable]:
        return list(self._read(VARIABLE_FILE, _variable))


def _variable(raw: dict[str, str]) -> Variable:
    allowed = [item.strip() for item in (raw.get("range") or "").split(",") if item.strip()]
    return Variable(
        id=int(raw["id"]),
        name=raw["name"],
        value=raw.get("value") or "",
        allowed_range=allowed,
        hazardous=_flag(raw.get("hazardous")),
    )
