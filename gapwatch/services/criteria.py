from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping

from gapwatch.core.errors import QueryError
from gapwatch.domain.records import Period


FIELD_START = "dtstart"
FIELD_END = "dtend"
FIELD_CHANNEL = "channel"
FIELD_STATUS = "status"
FIELD_RECORD = "record"
FIELD_SOURCE = "source"
FIELD_LIMIT = "limit"
FIELD_PAGE = "page"
FIELD_CORRUPTED = "corrupted"
FIELD_COMPLETED = "completed"
FIELD_ORDER = "order"
FIELD_BY = "by"

ORDER_ASC = "asc"
ORDER_DESC = "desc"

_RFC3339 = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})T(?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d+))?(?P<tz>Z|[+-]\d{2}:\d{2})$"
)
_INTEGER = re.compile(r"^[+-]?\d+$")
_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})


@dataclass(frozen=True)
class Criteria:
    period: Period = field(default_factory=Period)
    channel: str = ""
    status: str = ""
    record: str = ""
    source: str = ""
    # False means "exclude flagged rows", not "do not filter".
    corrupted: bool = False
    completed: bool = False
    order_field: str = ""
    order_direction: str = ORDER_DESC
    limit: int = 0
    page_index: int = 0


def parse_timestamp(raw: str | None, name: str = "timestamp") -> datetime | None:
    """Parse an RFC3339 timestamp into an aware UTC datetime.

    An empty value means the bound is absent. Offsets are mandatory.
    """
    if not raw:
        return None
    match = _RFC3339.match(raw)
    if match is None:
        raise QueryError(f"{name}: invalid timestamp {raw!r}")
    frac = (match.group("frac") or "")[:6].ljust(6, "0")
    tz = match.group("tz")
    if tz == "Z":
        tz = "+00:00"
    try:
        parsed = datetime.fromisoformat(f"{match.group('date')}T{match.group('time')}.{frac}{tz}")
    except ValueError as exc:
        raise QueryError(f"{name}: invalid timestamp {raw!r}") from exc
    return parsed.astimezone(timezone.utc)


def parse_bool(raw: str | None, name: str) -> bool:
    if not raw:
        return False
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise QueryError(f"{name}: invalid boolean {raw!r}")


def parse_int(raw: str | None, name: str) -> int:
    if not raw:
        return 0
    if not _INTEGER.match(raw):
        raise QueryError(f"{name}: invalid integer {raw!r}")
    return int(raw)


def parse_order(raw: str | None) -> str:
    # Only an explicit "asc" sorts ascending; everything else is descending.
    if raw and raw.lower() == ORDER_ASC:
        return ORDER_ASC
    return ORDER_DESC


def parse_page(raw: str | None) -> int:
    # Pages are 1-indexed on the wire; 0 and 1 both select the first page.
    page = parse_int(raw, FIELD_PAGE)
    if page < 0:
        raise QueryError(f"{FIELD_PAGE}: must not be negative")
    if page > 0:
        page -= 1
    return page


def parse_criteria(params: Mapping[str, str]) -> Criteria:
    """Build a Criteria from raw query parameters, raising QueryError on bad input."""
    period = Period(
        starts=parse_timestamp(params.get(FIELD_START), FIELD_START),
        ends=parse_timestamp(params.get(FIELD_END), FIELD_END),
    )
    return Criteria(
        period=period,
        channel=params.get(FIELD_CHANNEL) or "",
        status=params.get(FIELD_STATUS) or "",
        record=params.get(FIELD_RECORD) or "",
        source=params.get(FIELD_SOURCE) or "",
        corrupted=parse_bool(params.get(FIELD_CORRUPTED), FIELD_CORRUPTED),
        completed=parse_bool(params.get(FIELD_COMPLETED), FIELD_COMPLETED),
        order_field=params.get(FIELD_BY) or "",
        order_direction=parse_order(params.get(FIELD_ORDER)),
        limit=parse_int(params.get(FIELD_LIMIT), FIELD_LIMIT),
        page_index=parse_page(params.get(FIELD_PAGE)),
    )
