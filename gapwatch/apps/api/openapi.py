from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    err: str


def _error(description: str, message: str) -> dict[str, Any]:
    # Build a consistent error example for OpenAPI docs.
    return {
        "model": ErrorResponse,
        "description": description,
        "content": {"application/json": {"example": {"err": message}}},
    }


DEFAULT_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    204: {"description": "No matching record"},
    400: _error("Invalid query or rejected operation", "dtstart: invalid timestamp 'yesterday'"),
    404: _error("Unknown record", "replay 42: no such replay"),
    500: _error("Storage failure", "database error while listing replays"),
    501: _error("Not supported by the active store", "write: not supported by the files store"),
}
