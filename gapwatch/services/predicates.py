from __future__ import annotations

import enum
import operator
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Union

from sqlalchemy import and_
from sqlalchemy.sql import ColumnElement

from gapwatch.core.errors import QueryError
from gapwatch.services.criteria import Criteria, parse_int


class Scope(str, enum.Enum):
    HRD_GAP = "hrd"
    VMU_GAP = "vmu"
    REPLAY = "replay"


class Op(str, enum.Enum):
    EQ = "eq"
    GE = "ge"
    LE = "le"


# Timestamp column every scope filters its date range on.
DATE_FIELD = "timestamp"

_PYTHON_OPS: dict[Op, Callable[[Any, Any], bool]] = {
    Op.EQ: operator.eq,
    Op.GE: operator.ge,
    Op.LE: operator.le,
}


@dataclass(frozen=True)
class Comparison:
    field: str
    op: Op
    value: Any


@dataclass(frozen=True)
class Conjunction:
    terms: tuple["Predicate", ...]


Predicate = Union[Comparison, Conjunction]


def conjoin(*predicates: Predicate | None) -> Predicate | None:
    # AND together the present predicates, flattening nested conjunctions.
    terms: list[Predicate] = []
    for predicate in predicates:
        if predicate is None:
            continue
        if isinstance(predicate, Conjunction):
            terms.extend(predicate.terms)
        else:
            terms.append(predicate)
    if not terms:
        return None
    if len(terms) == 1:
        return terms[0]
    return Conjunction(tuple(terms))


def date_predicate(criteria: Criteria) -> Predicate | None:
    starts, ends = criteria.period.starts, criteria.period.ends
    if starts is None and ends is not None:
        return Comparison(DATE_FIELD, Op.LE, ends)
    if starts is not None and ends is None:
        return Comparison(DATE_FIELD, Op.GE, starts)
    if starts is not None and ends is not None:
        return Conjunction(
            (
                Comparison(DATE_FIELD, Op.GE, starts),
                Comparison(DATE_FIELD, Op.LE, ends),
            )
        )
    return None


def _flag_predicates(criteria: Criteria) -> list[Predicate]:
    # A false flag pins the stored column to false; true adds no conjunct at all.
    terms: list[Predicate] = []
    if not criteria.corrupted:
        terms.append(Comparison("corrupted", Op.EQ, False))
    if not criteria.completed:
        terms.append(Comparison("completed", Op.EQ, False))
    return terms


def _hrd_terms(criteria: Criteria) -> list[Predicate]:
    terms: list[Predicate] = []
    if criteria.channel:
        terms.append(Comparison("channel", Op.EQ, criteria.channel))
    return terms + _flag_predicates(criteria)


def _vmu_terms(criteria: Criteria) -> list[Predicate]:
    terms: list[Predicate] = []
    if criteria.record:
        terms.append(Comparison("phase", Op.EQ, criteria.record))
    if criteria.source:
        terms.append(Comparison("source", Op.EQ, parse_int(criteria.source, "source")))
    return terms + _flag_predicates(criteria)


def _replay_terms(criteria: Criteria) -> list[Predicate]:
    terms: list[Predicate] = []
    if criteria.status:
        terms.append(Comparison("status", Op.EQ, criteria.status))
    return terms


_SCOPE_TERMS: dict[Scope, Callable[[Criteria], list[Predicate]]] = {
    Scope.HRD_GAP: _hrd_terms,
    Scope.VMU_GAP: _vmu_terms,
    Scope.REPLAY: _replay_terms,
}


def build_predicate(criteria: Criteria, scope: Scope) -> Predicate | None:
    """Compose the filter for one entity scope.

    Returns None when nothing beyond the entity selection applies.
    """
    return conjoin(date_predicate(criteria), *_SCOPE_TERMS[scope](criteria))


def to_clause(predicate: Predicate, columns: Mapping[str, ColumnElement[Any]]) -> ColumnElement[bool]:
    """Compile a predicate against the columns of a scope's projection."""
    if isinstance(predicate, Conjunction):
        return and_(*(to_clause(term, columns) for term in predicate.terms))
    column = columns.get(predicate.field)
    if column is None:
        raise QueryError(f"unknown filter field: {predicate.field}")
    if predicate.op is Op.EQ:
        return column == predicate.value
    if predicate.op is Op.GE:
        return column >= predicate.value
    return column <= predicate.value


def matches(predicate: Predicate | None, row: Mapping[str, Any]) -> bool:
    """Evaluate a predicate against an in-memory row."""
    if predicate is None:
        return True
    if isinstance(predicate, Conjunction):
        return all(matches(term, row) for term in predicate.terms)
    if predicate.field not in row:
        raise QueryError(f"unknown filter field: {predicate.field}")
    value = row[predicate.field]
    if value is None:
        return False
    return _PYTHON_OPS[predicate.op](value, predicate.value)
