from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from gapwatch.apps.api.deps import get_criteria, get_replay_manager
from gapwatch.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from gapwatch.domain.records import NewReplay, Period, Replay, StatusInfo
from gapwatch.services.criteria import Criteria
from gapwatch.services.replays import ReplayManager


router = APIRouter(prefix="/requests", tags=["requests"], responses=DEFAULT_ERROR_RESPONSES)


class ReplayResponse(BaseModel):
    id: int
    time: str
    dtstart: str | None
    dtend: str | None
    priority: int
    comment: str
    status: str
    automatic: bool
    cancellable: bool
    corrupted: int
    missing: int


class ReplayListResponse(BaseModel):
    total: int
    data: list[ReplayResponse]


class StatusInfoResponse(BaseModel):
    id: int
    name: str
    count: int
    order: int


class RegisterReplayRequest(BaseModel):
    # Full replay documents are accepted; server-owned fields are ignored.
    dtstart: datetime | None = None
    dtend: datetime | None = None
    priority: int = 0
    comment: str = ""
    automatic: bool = False


class CancelReplayRequest(BaseModel):
    comment: str = ""


class PriorityRequest(BaseModel):
    priority: int = Field(default=0)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _to_response(replay: Replay) -> ReplayResponse:
    return ReplayResponse(
        id=replay.id,
        time=replay.registered_at.isoformat(),
        dtstart=_iso(replay.period.starts),
        dtend=_iso(replay.period.ends),
        priority=replay.priority,
        comment=replay.comment,
        status=replay.status,
        automatic=replay.automatic,
        cancellable=replay.cancellable,
        corrupted=replay.corrupted,
        missing=replay.missing,
    )


def _status_response(info: StatusInfo) -> StatusInfoResponse:
    return StatusInfoResponse(id=info.id, name=info.name, count=info.count, order=info.order)


@router.get("/", response_model=ReplayListResponse)
async def list_requests(
    criteria: Criteria = Depends(get_criteria),
    manager: ReplayManager = Depends(get_replay_manager),
) -> ReplayListResponse:
    page = await manager.list_replays(criteria)
    return ReplayListResponse(total=page.total, data=[_to_response(item) for item in page.items])


@router.post("/", status_code=201, response_model=ReplayResponse)
async def register_request(
    payload: RegisterReplayRequest,
    manager: ReplayManager = Depends(get_replay_manager),
) -> ReplayResponse:
    replay = await manager.register(
        NewReplay(
            period=Period(starts=payload.dtstart, ends=payload.dtend),
            priority=payload.priority,
            comment=payload.comment,
            automatic=payload.automatic,
        )
    )
    return _to_response(replay)


# Declared before /{replay_id} so "status" is not parsed as an id.
@router.get("/status/", response_model=list[StatusInfoResponse])
async def list_registered_status(
    manager: ReplayManager = Depends(get_replay_manager),
) -> list[StatusInfoResponse]:
    return [_status_response(info) for info in await manager.list_statuses()]


@router.get("/{replay_id}", response_model=ReplayResponse)
async def show_request(
    replay_id: int,
    manager: ReplayManager = Depends(get_replay_manager),
) -> ReplayResponse:
    return _to_response(await manager.fetch_detail(replay_id))


@router.post("/{replay_id}", status_code=201, response_model=ReplayResponse)
async def cancel_request(
    replay_id: int,
    payload: CancelReplayRequest,
    manager: ReplayManager = Depends(get_replay_manager),
) -> ReplayResponse:
    return _to_response(await manager.cancel(replay_id, payload.comment))


@router.put("/{replay_id}", response_model=ReplayResponse)
async def update_request(
    replay_id: int,
    payload: PriorityRequest,
    manager: ReplayManager = Depends(get_replay_manager),
) -> ReplayResponse:
    return _to_response(await manager.update_priority(replay_id, payload.priority))
