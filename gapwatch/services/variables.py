from __future__ import annotations

import logging

from gapwatch.core.errors import NotFoundError
from gapwatch.domain.records import Variable
from gapwatch.persistence.store import Store


logger = logging.getLogger(__name__)


async def list_variables(store: Store) -> list[Variable]:
    return await store.list_variables()


async def update_variable(store: Store, variable_id: int, value: str) -> Variable:
    async with store.transaction() as tx:
        if not await tx.update_variable(variable_id, value):
            raise NotFoundError(f"variable {variable_id}: no such variable")
    logger.info("variable_updated variable_id=%s", variable_id)
    # Re-read so callers see what the store actually holds.
    return await store.get_variable(variable_id)
