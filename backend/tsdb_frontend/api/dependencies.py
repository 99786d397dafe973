"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from tsdb_frontend.core.config import Settings
from tsdb_frontend.core.context import QueryContext
from tsdb_frontend.core.errors import InvalidParameter
from tsdb_frontend.storage.querier import OpenTSDBQueryable


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_queryable(request: Request) -> OpenTSDBQueryable:
    return request.app.state.queryable


def get_query_context(request: Request) -> QueryContext:
    """Per-request context bounded by the configured query timeout.

    A Prometheus style ``timeout`` parameter may shorten it, never extend it.
    """
    settings = get_app_settings(request)
    timeout = settings.query_timeout
    requested = request.query_params.get("timeout")
    if requested:
        try:
            timeout = min(timeout, float(requested.rstrip("s")))
        except ValueError as exc:
            raise InvalidParameter(f"invalid timeout {requested!r}") from exc
    return QueryContext.with_timeout(timeout)


__all__ = ["get_app_settings", "get_queryable", "get_query_context"]
