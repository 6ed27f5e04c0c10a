from __future__ import annotations

import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from gapwatch.apps.api.errors import (
    error_body,
    gapwatch_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from gapwatch.apps.api.routes.archives import router as archives_router
from gapwatch.apps.api.routes.health import router as health_router
from gapwatch.apps.api.routes.requests import router as requests_router
from gapwatch.apps.api.routes.status import router as status_router
from gapwatch.apps.api.routes.variables import router as variables_router
from gapwatch.core.config import get_settings
from gapwatch.core.errors import GapwatchError
from gapwatch.core.logging import configure_logging
from gapwatch.persistence.store import Store, build_store


logger = logging.getLogger(__name__)

_ALLOWED_METHODS = ["GET", "OPTIONS", "DELETE", "PUT", "POST"]
_BODY_METHODS = frozenset({"POST", "PUT", "DELETE"})


async def _body_too_large(request: Request, limit: int) -> bool:
    length = request.headers.get("content-length")
    if length is not None:
        return length.isdigit() and int(length) > limit
    if request.method not in _BODY_METHODS:
        return False
    # Chunked bodies carry no length; the buffered body is replayed to the route.
    return len(await request.body()) > limit


def create_app(store: Store | None = None) -> FastAPI:
    configure_logging()
    settings = get_settings()
    app = FastAPI(title="Gapwatch API")
    app.state.store = store or build_store(settings)
    logger.info("store_selected backend=%s", app.state.store.name)

    origins = [origin.strip() for origin in settings.cors_allowed_origins.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=_ALLOWED_METHODS,
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):  # type: ignore[override]
        # Preserve incoming request IDs or assign a new one for traceability.
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id
        if await _body_too_large(request, settings.max_body_bytes):
            response = error_body("request body too large", 400)
        else:
            start = time.monotonic()
            response = await call_next(request)
            logger.info(
                "request_done method=%s path=%s status=%s latency_ms=%.1f request_id=%s",
                request.method,
                request.url.path,
                response.status_code,
                (time.monotonic() - start) * 1000.0,
                request_id,
            )
        response.headers.setdefault("X-Request-Id", request_id)
        return response

    @app.exception_handler(GapwatchError)
    async def _gapwatch_exception_handler(request: Request, exc: GapwatchError):
        return await gapwatch_exception_handler(request, exc)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        return await validation_exception_handler(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
        return await http_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        return await unhandled_exception_handler(request, exc)

    app.include_router(health_router)
    app.include_router(archives_router)
    app.include_router(requests_router)
    app.include_router(status_router)
    app.include_router(variables_router)

    return app


app = create_app()
