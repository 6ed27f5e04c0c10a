from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Collection, Mapping

from sqlalchemy import Select
from sqlalchemy.sql import ColumnElement

from gapwatch.core.errors import QueryError
from gapwatch.services.criteria import ORDER_ASC, Criteria


@dataclass(frozen=True)
class Pagination:
    # limit/offset are None when every matching row is returned.
    limit: int | None
    offset: int | None
    order_field: str
    ascending: bool


class OrderingPolicy:
    """Derives limit/offset and ordering from a Criteria."""

    def __init__(self, default_field: str) -> None:
        if not default_field:
            raise ValueError("default order field must not be empty")
        self.default_field = default_field

    def resolve(self, criteria: Criteria) -> Pagination:
        limit: int | None = None
        offset: int | None = None
        if criteria.limit > 0:
            limit = criteria.limit
            offset = criteria.page_index * criteria.limit
        return Pagination(
            limit=limit,
            offset=offset,
            order_field=criteria.order_field or self.default_field,
            ascending=criteria.order_direction == ORDER_ASC,
        )


def apply_pagination(
    stmt: Select[Any],
    pagination: Pagination,
    columns: Mapping[str, ColumnElement[Any]],
    tiebreak: ColumnElement[Any] | None = None,
) -> Select[Any]:
    # Order fields come from the caller; only projection columns are accepted.
    column = columns.get(pagination.order_field)
    if column is None:
        raise QueryError(f"unknown order field: {pagination.order_field}")
    orderings = [column.asc() if pagination.ascending else column.desc()]
    if tiebreak is not None:
        # Stable paging when several rows share the sort value.
        orderings.append(tiebreak.asc() if pagination.ascending else tiebreak.desc())
    stmt = stmt.order_by(*orderings)
    if pagination.limit is not None:
        stmt = stmt.limit(pagination.limit).offset(pagination.offset or 0)
    return stmt


def sort_rows(
    rows: list[dict[str, Any]],
    pagination: Pagination,
    fields: Collection[str],
) -> list[dict[str, Any]]:
    """Order and slice in-memory rows the same way apply_pagination does in SQL."""
    # Checked against the known columns so an empty result still rejects a bad field.
    if pagination.order_field not in fields:
        raise QueryError(f"unknown order field: {pagination.order_field}")
    # None sorts first ascending, last descending.
    ordered = sorted(
        rows,
        key=lambda row: (
            row.get(pagination.order_field) is not None,
            row.get(pagination.order_field),
            row.get("id"),
        ),
        reverse=not pagination.ascending,
    )
    if pagination.limit is None:
        return ordered
    start = pagination.offset or 0
    return ordered[start : start + pagination.limit]
