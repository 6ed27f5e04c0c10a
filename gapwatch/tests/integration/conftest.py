from __future__ import annotations

import pytest

from gapwatch.domain.models import Base
from gapwatch.persistence.db import engine
from gapwatch.tests.utils.seed import seed_statuses


@pytest.fixture(autouse=True)
async def database() -> None:
    # Rebuild the schema per test so rows never leak between cases.
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await seed_statuses()
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Dispose the async engine to prevent cross-loop connection reuse between tests.
    await engine.dispose()
