from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gapwatch.domain.models import Variable
from gapwatch.persistence.hooks import execute


async def list_variables(session: AsyncSession) -> list[Variable]:
    result = await execute(session, select(Variable).order_by(Variable.id), scope="variable")
    return list(result.scalars().all())


async def get_variable(session: AsyncSession, variable_id: int) -> Variable | None:
    result = await execute(
        session, select(Variable).where(Variable.id == variable_id), scope="variable"
    )
    return result.scalar_one_or_none()


async def update_value(session: AsyncSession, variable_id: int, value: str) -> int:
    # Update in place; variables carry no version history.
    result = await execute(
        session,
        update(Variable).where(Variable.id == variable_id).values(value=value),
        scope="variable",
    )
    return int(result.rowcount or 0)
