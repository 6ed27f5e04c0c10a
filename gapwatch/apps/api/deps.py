from __future__ import annotations

from fastapi import Depends, Request

from gapwatch.core.config import Settings, get_settings
from gapwatch.persistence.store import Store
from gapwatch.services.archives import GapArchive
from gapwatch.services.criteria import Criteria, parse_criteria
from gapwatch.services.pagination import OrderingPolicy
from gapwatch.services.replays import ReplayManager
from gapwatch.services.stats import StatsService


def get_store(request: Request) -> Store:
    # The backend is selected once in create_app and shared by every request.
    return request.app.state.store


def get_policy(settings: Settings = Depends(get_settings)) -> OrderingPolicy:
    return OrderingPolicy(settings.default_order_field)


def get_criteria(request: Request) -> Criteria:
    return parse_criteria(request.query_params)


def get_replay_manager(
    store: Store = Depends(get_store),
    policy: OrderingPolicy = Depends(get_policy),
) -> ReplayManager:
    return ReplayManager(store, policy)


def get_gap_archive(
    store: Store = Depends(get_store),
    policy: OrderingPolicy = Depends(get_policy),
) -> GapArchive:
    return GapArchive(store, policy)


def get_stats_service(
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> StatsService:
    return StatsService(store, settings.stats_default_days)
