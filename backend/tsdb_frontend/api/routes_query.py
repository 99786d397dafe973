"""Prometheus-compatible read API routes backed by OpenTSDB."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Sequence

from fastapi import APIRouter, Depends, Request
from starlette.datastructures import ImmutableMultiDict, QueryParams

from tsdb_frontend.api.dependencies import get_app_settings, get_query_context, get_queryable
from tsdb_frontend.api.selectors import parse_selector
from tsdb_frontend.core.config import Settings
from tsdb_frontend.core.context import QueryContext
from tsdb_frontend.core.errors import InvalidParameter
from tsdb_frontend.core.logging import get_logger
from tsdb_frontend.models.dto import LabelValuesResponse, SeriesResponse
from tsdb_frontend.models.labels import Matcher
from tsdb_frontend.storage.querier import OpenTSDBQueryable
from tsdb_frontend.utils.time import now_s, parse_time

logger = get_logger(__name__)

router = APIRouter()

_DISCONNECT_POLL_SECONDS = 0.25


@router.api_route(
    "/series",
    methods=["GET", "POST"],
    response_model=SeriesResponse,
    summary="Find series by label matchers",
)
async def find_series(
    request: Request,
    ctx: QueryContext = Depends(get_query_context),
    queryable: OpenTSDBQueryable = Depends(get_queryable),
    settings: Settings = Depends(get_app_settings),
) -> SeriesResponse:
    params = await _request_params(request)
    selectors = params.getlist("match[]")
    if not selectors:
        raise InvalidParameter("no match[] parameter provided")
    matcher_sets = [parse_selector(selector) for selector in selectors]
    start, end = _time_range(params, settings)
    data = await _run_bound(request, ctx, _collect_series, queryable, ctx, start, end, matcher_sets)
    return SeriesResponse(data=data)


@router.get(
    "/label/{name}/values",
    response_model=LabelValuesResponse,
    summary="List values of a label",
)
async def label_values(
    name: str,
    request: Request,
    ctx: QueryContext = Depends(get_query_context),
    queryable: OpenTSDBQueryable = Depends(get_queryable),
    settings: Settings = Depends(get_app_settings),
) -> LabelValuesResponse:
    start, end = _time_range(request.query_params, settings)
    values = await _run_bound(request, ctx, _collect_label_values, queryable, ctx, start, end, name)
    return LabelValuesResponse(data=values)


def _collect_series(
    queryable: OpenTSDBQueryable,
    ctx: QueryContext,
    start: int,
    end: int,
    matcher_sets: Sequence[Sequence[Matcher]],
) -> list[dict[str, str]]:
    querier = queryable.querier(start, end)
    seen: dict[tuple, dict[str, str]] = {}
    try:
        for matchers in matcher_sets:
            series_set = querier.select(ctx, *matchers)
            error = series_set.err()
            if error is not None:
                raise error
            for series in series_set:
                labels = series.labels()
                seen.setdefault(tuple(labels), labels.to_dict())
    finally:
        querier.close()
    return list(seen.values())


def _collect_label_values(
    queryable: OpenTSDBQueryable,
    ctx: QueryContext,
    start: int,
    end: int,
    name: str,
) -> list[str]:
    querier = queryable.querier(start, end)
    try:
        return querier.label_values(ctx, name)
    finally:
        querier.close()


async def _run_bound(request: Request, ctx: QueryContext, func: Callable[..., Any], *args: Any) -> Any:
    """Run blocking ``func`` off the event loop; cancel ``ctx`` if the client goes away."""
    loop = asyncio.get_running_loop()
    future = loop.run_in_executor(None, func, *args)
    while True:
        done, _ = await asyncio.wait({future}, timeout=_DISCONNECT_POLL_SECONDS)
        if done:
            return future.result()
        if not ctx.canceled and await request.is_disconnected():
            logger.info("client disconnected from %s; canceling query", request.url.path)
            ctx.cancel()


async def _request_params(request: Request) -> ImmutableMultiDict:
    items = list(request.query_params.multi_items())
    if request.method == "POST":
        body = await request.body()
        try:
            form = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidParameter(f"request body is not valid UTF-8: {exc}") from exc
        items.extend(QueryParams(form).multi_items())
    return ImmutableMultiDict(items)


def _time_range(params: Any, settings: Settings) -> tuple[int, int]:
    raw_end = params.get("end")
    end = parse_time(raw_end) if raw_end else now_s()
    raw_start = params.get("start")
    start = parse_time(raw_start) if raw_start else end - settings.default_lookback
    if start > end:
        raise InvalidParameter("end timestamp must not be before start time")
    return start, end


__all__ = ["router"]
