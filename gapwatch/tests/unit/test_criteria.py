from __future__ import annotations

from datetime import datetime, timezone

import pytest

from gapwatch.core.errors import QueryError
from gapwatch.services.criteria import (
    ORDER_ASC,
    ORDER_DESC,
    parse_bool,
    parse_criteria,
    parse_int,
    parse_page,
    parse_timestamp,
)


def test_empty_params_yield_defaults() -> None:
    criteria = parse_criteria({})
    assert criteria.period.starts is None
    assert criteria.period.ends is None
    assert criteria.corrupted is False
    assert criteria.completed is False
    assert criteria.limit == 0
    assert criteria.page_index == 0
    assert criteria.order_direction == ORDER_DESC
    assert criteria.order_field == ""


def test_full_params_are_normalized() -> None:
    criteria = parse_criteria(
        {
            "dtstart": "2026-03-01T10:00:00+02:00",
            "dtend": "2026-03-02T00:00:00Z",
            "channel": "vic1",
            "status": "pending",
            "record": "playback",
            "source": "3",
            "corrupted": "true",
            "completed": "0",
            "by": "priority",
            "order": "ASC",
            "limit": "25",
            "page": "3",
        }
    )
    assert criteria.period.starts == datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
    assert criteria.period.starts.tzinfo == timezone.utc
    assert criteria.period.ends == datetime(2026, 3, 2, tzinfo=timezone.utc)
    assert criteria.channel == "vic1"
    assert criteria.status == "pending"
    assert criteria.record == "playback"
    assert criteria.source == "3"
    assert criteria.corrupted is True
    assert criteria.completed is False
    assert criteria.order_field == "priority"
    assert criteria.order_direction == ORDER_ASC
    assert criteria.limit == 25
    assert criteria.page_index == 2


@pytest.mark.parametrize("raw", ["yesterday", "2026-03-01", "2026-03-01T10:00:00", "2026-13-01T00:00:00Z"])
def test_malformed_timestamps_are_rejected(raw: str) -> None:
    with pytest.raises(QueryError):
        parse_timestamp(raw, "dtstart")


def test_timestamp_fraction_is_truncated_to_microseconds() -> None:
    parsed = parse_timestamp("2026-03-01T00:00:00.123456789Z")
    assert parsed is not None
    assert parsed.microsecond == 123456


def test_malformed_bool_and_int_are_rejected() -> None:
    with pytest.raises(QueryError):
        parse_bool("yes", "corrupted")
    with pytest.raises(QueryError):
        parse_int("ten", "limit")
    with pytest.raises(QueryError):
        parse_criteria({"page": "1.5"})


def test_page_is_one_indexed_on_the_wire() -> None:
    assert parse_page(None) == 0
    assert parse_page("0") == 0
    assert parse_page("1") == 0
    assert parse_page("4") == 3


def test_negative_page_is_rejected() -> None:
    with pytest.raises(QueryError, match="page: must not be negative"):
        parse_page("-1")
    with pytest.raises(QueryError):
        parse_criteria({"limit": "10", "page": "-2"})


def test_unknown_direction_falls_back_to_descending() -> None:
    assert parse_criteria({"order": "sideways"}).order_direction == ORDER_DESC
