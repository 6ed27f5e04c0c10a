from __future__ import annotations

import logging

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gapwatch.core.errors import (
    EmptyResultError,
    GapwatchError,
    InternalError,
    NotFoundError,
    NotImplementedCapability,
    QueryError,
)


logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[GapwatchError], int], ...] = (
    (QueryError, 400),
    (NotFoundError, 404),
    (NotImplementedCapability, 501),
    (InternalError, 500),
)


def error_body(message: str, status_code: int, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(content={"err": message}, status_code=status_code, headers=headers)


def status_for(exc: GapwatchError) -> int:
    for kind, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, kind):
            return status_code
    return 500


async def gapwatch_exception_handler(request: Request, exc: GapwatchError) -> Response:
    # An empty result is not a failure: report it as no content.
    if isinstance(exc, EmptyResultError):
        return Response(status_code=204)
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(
            "request_failed method=%s path=%s error=%s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc.__cause__ or exc,
        )
    return error_body(str(exc), status_code)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed bodies and path parameters are caller errors like any bad query.
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return error_body("; ".join(parts) or "invalid request", 400)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_body(str(exc.detail), exc.status_code, headers=exc.headers)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Avoid leaking stack traces; log them and return a stable internal error body.
    logger.exception("request_unhandled method=%s path=%s", request.method, request.url.path)
    return error_body("internal server error", 500)
