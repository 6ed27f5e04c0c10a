from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from gapwatch.apps.api.deps import get_stats_service
from gapwatch.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from gapwatch.services.criteria import parse_int
from gapwatch.services.stats import StatsService


router = APIRouter(tags=["status"], responses=DEFAULT_ERROR_RESPONSES)


class CountResponse(BaseModel):
    count: int


class RequestsOverview(BaseModel):
    count: int
    duration: int


class OverviewResponse(BaseModel):
    requests: RequestsOverview
    hrd: CountResponse
    vmu: CountResponse


class ItemStatResponse(BaseModel):
    label: str
    origin: str
    time: str
    count: int
    duration: int


class JobStatResponse(BaseModel):
    status: str
    time: str
    count: int


@router.get("/status/", response_model=OverviewResponse)
async def show_status(stats: StatsService = Depends(get_stats_service)) -> OverviewResponse:
    overview = await stats.overview()
    return OverviewResponse(
        requests=RequestsOverview(count=overview.replays_today, duration=overview.pending_seconds),
        hrd=CountResponse(count=overview.hrd_gaps_today),
        vmu=CountResponse(count=overview.vmu_gaps_today),
    )


@router.get("/stats/items/", response_model=list[ItemStatResponse])
async def list_items_stats(
    days: str | None = Query(default=None),
    stats: StatsService = Depends(get_stats_service),
) -> list[ItemStatResponse]:
    items = await stats.items(parse_int(days, "days"))
    return [
        ItemStatResponse(
            label=item.label,
            origin=item.origin,
            time=item.when.isoformat(),
            count=item.count,
            duration=item.duration,
        )
        for item in items
    ]


@router.get("/stats/requests/", response_model=list[JobStatResponse])
async def list_requests_stats(
    days: str | None = Query(default=None),
    stats: StatsService = Depends(get_stats_service),
) -> list[JobStatResponse]:
    jobs = await stats.replays(parse_int(days, "days"))
    return [JobStatResponse(status=job.status, time=job.when.isoformat(), count=job.count) for job in jobs]
