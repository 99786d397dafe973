"""OpenTSDB request building, transport and response decoding."""

from .request_builder import FilterMode, build_request, needs_post_filter
from .parser import parse_query_response, parse_suggest_response
from .transport import HTTPResult, OpenTSDBClient

__all__ = [
    "FilterMode",
    "build_request",
    "needs_post_filter",
    "parse_query_response",
    "parse_suggest_response",
    "HTTPResult",
    "OpenTSDBClient",
]
