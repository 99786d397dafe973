"""Error kinds raised by the OpenTSDB bridge."""

from __future__ import annotations


class TSDBFrontendError(Exception):
    """Base class for every error surfaced by the query pipeline."""


class UnsupportedMatcher(TSDBFrontendError):
    """A label matcher that the OpenTSDB query API cannot express."""


class UnsupportedOperation(TSDBFrontendError):
    """A storage operation this read-only bridge does not implement."""


class TransportError(TSDBFrontendError):
    """Network or HTTP level failure talking to OpenTSDB."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(TSDBFrontendError):
    """OpenTSDB answered with a body that is not the expected JSON shape."""


class QueryAborted(TSDBFrontendError):
    """The query context ended before the pipeline finished."""


class QueryCanceled(QueryAborted):
    """The query context was canceled by its owner."""


class QueryTimeout(QueryAborted):
    """The query context deadline passed."""


class InvalidParameter(TSDBFrontendError, ValueError):
    """An inbound request parameter is malformed."""


class SelectorError(InvalidParameter):
    """An inbound series selector could not be parsed."""


__all__ = [
    "TSDBFrontendError",
    "UnsupportedMatcher",
    "UnsupportedOperation",
    "TransportError",
    "DecodeError",
    "QueryAborted",
    "QueryCanceled",
    "QueryTimeout",
    "InvalidParameter",
    "SelectorError",
]
