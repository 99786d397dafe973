"""Decoding of OpenTSDB answers."""

from __future__ import annotations

from typing import TYPE_CHECKING

import orjson
from pydantic import TypeAdapter, ValidationError

from tsdb_frontend.core.errors import DecodeError, TransportError
from tsdb_frontend.models.opentsdb import ResponseEntry

if TYPE_CHECKING:
    from tsdb_frontend.opentsdb.transport import HTTPResult

METRIC_NOT_FOUND = "No such name for 'metrics'"

_ENTRIES = TypeAdapter(list[ResponseEntry])
_NAMES = TypeAdapter(list[str])


def parse_query_response(result: HTTPResult) -> list[ResponseEntry]:
    """Validate an ``/api/query`` answer and drop series without datapoints.

    An unknown metric is reported by OpenTSDB as an HTTP error; it is
    returned here as an empty result, like a metric with no matching series.
    """
    if not result.ok:
        if METRIC_NOT_FOUND in result.text:
            return []
        raise _status_error(result)
    try:
        entries = _ENTRIES.validate_json(result.body)
    except ValidationError as exc:
        raise DecodeError(f"malformed OpenTSDB query response: {_first_error(exc)}") from exc
    return [entry for entry in entries if entry.dps]


def parse_suggest_response(result: HTTPResult) -> list[str]:
    if not result.ok:
        raise _status_error(result)
    try:
        return _NAMES.validate_json(result.body)
    except ValidationError as exc:
        raise DecodeError(f"malformed OpenTSDB suggest response: {_first_error(exc)}") from exc


def _status_error(result: HTTPResult) -> TransportError:
    message = f"request failed status: {result.status_code} {result.reason}".rstrip()
    detail = _error_detail(result.body)
    if detail:
        message = f"{message}: {detail}"
    return TransportError(message, status_code=result.status_code)


def _error_detail(body: bytes) -> str | None:
    """Pull ``error.message`` out of an OpenTSDB error document if there is one."""
    try:
        document = orjson.loads(body)
    except orjson.JSONDecodeError:
        text = body.decode("utf-8", errors="replace").strip()
        return text[:200] or None
    if isinstance(document, dict) and isinstance(document.get("error"), dict):
        message = document["error"].get("message")
        if isinstance(message, str):
            return message
    return None


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first['msg']}" if location else first["msg"]


__all__ = ["METRIC_NOT_FOUND", "parse_query_response", "parse_suggest_response"]
