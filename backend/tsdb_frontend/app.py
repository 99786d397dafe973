"""FastAPI application setup for the OpenTSDB frontend."""

from __future__ import annotations

import time

import requests
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tsdb_frontend.api.routes_admin import router as admin_router
from tsdb_frontend.api.routes_query import router as query_router
from tsdb_frontend.core.config import Settings, load_settings
from tsdb_frontend.core.errors import (
    DecodeError,
    InvalidParameter,
    QueryCanceled,
    QueryTimeout,
    TransportError,
    TSDBFrontendError,
    UnsupportedMatcher,
    UnsupportedOperation,
)
from tsdb_frontend.core.logging import configure_logging, get_logger
from tsdb_frontend.core.metrics import REQUEST_COUNT, REQUEST_LATENCY
from tsdb_frontend.models.dto import ErrorResponse, ErrorType
from tsdb_frontend.opentsdb.transport import SessionFactory
from tsdb_frontend.storage.querier import OpenTSDBQueryable

API_ROUTE = "/api/v1"

logger = get_logger(__name__)

_ERROR_STATUS: tuple[tuple[type[TSDBFrontendError], int, ErrorType], ...] = (
    (InvalidParameter, 400, "bad_data"),
    (UnsupportedMatcher, 400, "bad_data"),
    (UnsupportedOperation, 400, "bad_data"),
    (QueryTimeout, 503, "timeout"),
    (QueryCanceled, 503, "canceled"),
    (TransportError, 422, "execution"),
    (DecodeError, 422, "execution"),
)


def create_app(
    settings: Settings | None = None,
    session_factory: SessionFactory = requests.Session,
) -> FastAPI:
    """Build the API around an explicit settings object."""
    settings = settings or load_settings()
    configure_logging(settings.log_level, use_json=settings.log_json)

    app = FastAPI(
        title="OpenTSDB PromQL Frontend",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.queryable = OpenTSDBQueryable(settings, session_factory=session_factory)

    app.include_router(query_router, prefix=API_ROUTE, tags=["query"])
    app.include_router(admin_router, prefix="", tags=["admin"])
    app.add_exception_handler(TSDBFrontendError, _frontend_error_handler)
    app.middleware("http")(_observe_requests)

    logger.info(
        "Serving on %s, will connect to OpenTSDB at %s",
        settings.listen_addr,
        settings.opentsdb_url,
    )
    return app


def error_status(exc: TSDBFrontendError) -> tuple[int, ErrorType]:
    for kind, status, error_type in _ERROR_STATUS:
        if isinstance(exc, kind):
            return status, error_type
    return 500, "internal"


async def _frontend_error_handler(request: Request, exc: TSDBFrontendError) -> JSONResponse:
    status, error_type = error_status(exc)
    if status >= 422:
        logger.warning(
            "%s %s failed: %s",
            request.method,
            request.url.path,
            exc,
            extra={"status_code": status, "error_type": error_type},
        )
    body = ErrorResponse(errorType=error_type, error=str(exc))
    return JSONResponse(status_code=status, content=body.model_dump())


async def _observe_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", "unmatched")
    REQUEST_LATENCY.labels(endpoint=endpoint, method=request.method).observe(time.perf_counter() - started)
    REQUEST_COUNT.labels(endpoint=endpoint, method=request.method, status=str(response.status_code)).inc()
    return response


__all__ = ["API_ROUTE", "create_app", "error_status"]
