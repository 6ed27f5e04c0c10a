from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import Executable, Result
from sqlalchemy.ext.asyncio import AsyncSession

from gapwatch.core.config import get_settings
from gapwatch.core.logging import resolve_level


logger = logging.getLogger("gapwatch.persistence.query")


def log_statement(scope: str, stmt: Executable) -> None:
    # Emit executed statements at a configurable level instead of printing them.
    level = resolve_level(get_settings().query_log_level, logging.DEBUG)
    if not logger.isEnabledFor(level):
        return
    logger.log(level, "query scope=%s sql=%s", scope, " ".join(str(stmt).split()))


async def execute(session: AsyncSession, stmt: Executable, *, scope: str) -> Result[Any]:
    # Single choke point for repository statements so every query is observable.
    log_statement(scope, stmt)
    return await session.execute(stmt)
