from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from gapwatch.apps.api.deps import get_criteria, get_gap_archive
from gapwatch.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from gapwatch.domain.records import HRDGap, VMUGap
from gapwatch.services.archives import GapArchive
from gapwatch.services.criteria import Criteria


router = APIRouter(prefix="/archives", tags=["archives"], responses=DEFAULT_ERROR_RESPONSES)


class HRDGapResponse(BaseModel):
    id: int
    time: str
    dtstart: str
    first: int
    dtend: str
    last: int
    channel: str
    replay: int | None
    completed: bool


class VMUGapResponse(BaseModel):
    id: int
    time: str
    dtstart: str
    first: int
    dtend: str
    last: int
    source: int
    record: str
    replay: int | None
    completed: bool


class HRDGapListResponse(BaseModel):
    total: int
    data: list[HRDGapResponse]


class VMUGapListResponse(BaseModel):
    total: int
    data: list[VMUGapResponse]


class ChannelResponse(BaseModel):
    channel: str
    count: int


class SourceResponse(BaseModel):
    source: int
    count: int


class RecordResponse(BaseModel):
    record: str
    count: int


def _hrd_response(gap: HRDGap) -> HRDGapResponse:
    return HRDGapResponse(
        id=gap.id,
        time=gap.detected_at.isoformat(),
        dtstart=gap.range_start.isoformat(),
        first=gap.first_sequence,
        dtend=gap.range_end.isoformat(),
        last=gap.last_sequence,
        channel=gap.channel,
        replay=gap.replay_id,
        completed=gap.completed,
    )


def _vmu_response(gap: VMUGap) -> VMUGapResponse:
    return VMUGapResponse(
        id=gap.id,
        time=gap.detected_at.isoformat(),
        dtstart=gap.range_start.isoformat(),
        first=gap.first_sequence,
        dtend=gap.range_end.isoformat(),
        last=gap.last_sequence,
        source=gap.source,
        record=gap.record_phase,
        replay=gap.replay_id,
        completed=gap.completed,
    )


@router.get("/hrd/gaps/", response_model=HRDGapListResponse)
async def list_gaps_hrd(
    criteria: Criteria = Depends(get_criteria),
    archive: GapArchive = Depends(get_gap_archive),
) -> HRDGapListResponse:
    page = await archive.list_hrd(criteria)
    return HRDGapListResponse(total=page.total, data=[_hrd_response(gap) for gap in page.items])


@router.get("/hrd/gaps/{gap_id}", response_model=HRDGapResponse)
async def show_gap_hrd(gap_id: int, archive: GapArchive = Depends(get_gap_archive)) -> HRDGapResponse:
    return _hrd_response(await archive.hrd_detail(gap_id))


@router.get("/hrd/channels/", response_model=list[ChannelResponse])
async def list_channels_hrd(archive: GapArchive = Depends(get_gap_archive)) -> list[ChannelResponse]:
    return [ChannelResponse(channel=info.channel, count=info.count) for info in await archive.channels()]


@router.get("/vmu/gaps/", response_model=VMUGapListResponse)
async def list_gaps_vmu(
    criteria: Criteria = Depends(get_criteria),
    archive: GapArchive = Depends(get_gap_archive),
) -> VMUGapListResponse:
    page = await archive.list_vmu(criteria)
    return VMUGapListResponse(total=page.total, data=[_vmu_response(gap) for gap in page.items])


@router.get("/vmu/gaps/{gap_id}", response_model=VMUGapResponse)
async def show_gap_vmu(gap_id: int, archive: GapArchive = Depends(get_gap_archive)) -> VMUGapResponse:
    return _vmu_response(await archive.vmu_detail(gap_id))


@router.get("/vmu/sources/", response_model=list[SourceResponse])
async def list_sources_vmu(archive: GapArchive = Depends(get_gap_archive)) -> list[SourceResponse]:
    return [SourceResponse(source=info.source, count=info.count) for info in await archive.sources()]


@router.get("/vmu/records/", response_model=list[RecordResponse])
async def list_records_vmu(archive: GapArchive = Depends(get_gap_archive)) -> list[RecordResponse]:
    return [RecordResponse(record=info.record, count=info.count) for info in await archive.records()]
