from __future__ import annotations


class GapwatchError(Exception):
    """Base error for gapwatch."""


class QueryError(GapwatchError):
    """Malformed caller input or a rejected business rule."""


class EmptyResultError(GapwatchError):
    """Valid query that matched no row where exactly one was expected."""


class NotFoundError(GapwatchError):
    """Mutation targeted a record that does not exist."""


class NotImplementedCapability(GapwatchError):
    """Operation not supported by the active storage backend."""


class InternalError(GapwatchError):
    """Storage or connectivity failure."""
