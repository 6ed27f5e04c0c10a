from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import column

from gapwatch.core.errors import QueryError
from gapwatch.domain.records import Period
from gapwatch.services.criteria import Criteria
from gapwatch.services.predicates import (
    DATE_FIELD,
    Comparison,
    Conjunction,
    Op,
    Scope,
    build_predicate,
    conjoin,
    date_predicate,
    matches,
    to_clause,
)


START = datetime(2026, 3, 1, tzinfo=timezone.utc)
END = datetime(2026, 3, 2, tzinfo=timezone.utc)


def _terms(predicate) -> list[Comparison]:
    if predicate is None:
        return []
    if isinstance(predicate, Conjunction):
        return list(predicate.terms)
    return [predicate]


def test_date_predicate_covers_each_bound_combination() -> None:
    assert date_predicate(Criteria()) is None
    assert date_predicate(Criteria(period=Period(ends=END))) == Comparison(DATE_FIELD, Op.LE, END)
    assert date_predicate(Criteria(period=Period(starts=START))) == Comparison(DATE_FIELD, Op.GE, START)
    both = date_predicate(Criteria(period=Period(starts=START, ends=END)))
    assert _terms(both) == [
        Comparison(DATE_FIELD, Op.GE, START),
        Comparison(DATE_FIELD, Op.LE, END),
    ]


def test_false_flags_pin_columns_and_true_flags_add_nothing() -> None:
    excluded = _terms(build_predicate(Criteria(), Scope.HRD_GAP))
    assert Comparison("corrupted", Op.EQ, False) in excluded
    assert Comparison("completed", Op.EQ, False) in excluded

    included = build_predicate(Criteria(corrupted=True, completed=True), Scope.HRD_GAP)
    assert included is None


def test_scope_terms_are_selected_by_entity() -> None:
    criteria = Criteria(channel="vic2", record="playback", source="7", status="pending",
                        corrupted=True, completed=True)
    assert _terms(build_predicate(criteria, Scope.HRD_GAP)) == [Comparison("channel", Op.EQ, "vic2")]
    assert _terms(build_predicate(criteria, Scope.VMU_GAP)) == [
        Comparison("phase", Op.EQ, "playback"),
        Comparison("source", Op.EQ, 7),
    ]
    # Replays never carry gap flags.
    assert _terms(build_predicate(Criteria(status="pending"), Scope.REPLAY)) == [
        Comparison("status", Op.EQ, "pending")
    ]


def test_non_integer_source_is_rejected() -> None:
    with pytest.raises(QueryError):
        build_predicate(Criteria(source="abc"), Scope.VMU_GAP)


def test_conjoin_flattens_and_skips_missing() -> None:
    first = Comparison("a", Op.EQ, 1)
    second = Comparison("b", Op.EQ, 2)
    assert conjoin(None, None) is None
    assert conjoin(first, None) == first
    assert conjoin(Conjunction((first,)), second) == Conjunction((first, second))


def test_to_clause_compiles_against_projection_columns() -> None:
    predicate = build_predicate(Criteria(period=Period(starts=START), channel="vic1"), Scope.HRD_GAP)
    columns = {name: column(name) for name in ("timestamp", "channel", "corrupted", "completed")}
    compiled = str(to_clause(predicate, columns))
    assert "timestamp >=" in compiled
    assert "channel =" in compiled
    assert "corrupted =" in compiled

    with pytest.raises(QueryError):
        to_clause(Comparison("nope", Op.EQ, 1), columns)


def test_matches_evaluates_rows_in_memory() -> None:
    predicate = build_predicate(Criteria(period=Period(starts=START, ends=END)), Scope.HRD_GAP)
    inside = {"timestamp": START, "corrupted": False, "completed": False}
    assert matches(predicate, inside)
    assert not matches(predicate, {**inside, "corrupted": True})
    assert not matches(predicate, {**inside, "timestamp": datetime(2026, 3, 3, tzinfo=timezone.utc)})
    # A missing value never satisfies a comparison.
    assert not matches(predicate, {**inside, "timestamp": None})
    assert matches(None, {})
