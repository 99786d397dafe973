"""HTTP transport for the OpenTSDB query API."""

from __future__ import annotations

import posixpath
import socket
import threading
import time
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import urlsplit, urlunsplit

import orjson
import requests
from requests.adapters import HTTPAdapter
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool

from tsdb_frontend.core.context import QueryContext
from tsdb_frontend.core.errors import QueryTimeout, TransportError, TSDBFrontendError
from tsdb_frontend.core.logging import get_logger
from tsdb_frontend.core.metrics import OPENTSDB_LATENCY, OPENTSDB_REQUESTS
from tsdb_frontend.models.opentsdb import QueryRequest, ResponseEntry
from tsdb_frontend.opentsdb.parser import parse_query_response, parse_suggest_response

logger = get_logger(__name__)

QUERY_PATH = "api/query"
SUGGEST_PATH = "api/suggest"

SessionFactory = Callable[[], requests.Session]


@dataclass(frozen=True, slots=True)
class HTTPResult:
    """Fully read HTTP answer, detached from the connection."""

    url: str
    status_code: int
    reason: str
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class InflightSockets:
    """Sockets opened on behalf of one client.

    ``abort`` shuts them down so a thread blocked on a read wakes up at once,
    whether it waits for headers or for the next body chunk. Sockets that
    connect after an abort are shut down as soon as they are registered.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sockets: set[socket.socket] = set()
        self._aborted = False

    def add(self, sock: socket.socket) -> None:
        with self._lock:
            self._sockets.add(sock)
            aborted = self._aborted
        if aborted:
            _shutdown(sock)

    def discard(self, sock: socket.socket) -> None:
        with self._lock:
            self._sockets.discard(sock)

    def reset(self) -> None:
        with self._lock:
            self._aborted = False

    def abort(self) -> None:
        with self._lock:
            self._aborted = True
            sockets = list(self._sockets)
        for sock in sockets:
            _shutdown(sock)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sockets)


class CancellableAdapter(HTTPAdapter):
    """HTTP adapter whose connections register their sockets with ``inflight``."""

    def __init__(self, inflight: InflightSockets, **kwargs: Any) -> None:
        # HTTPAdapter.__init__ builds the pool manager, so this must come first
        self.inflight = inflight
        super().__init__(**kwargs)

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
        super().init_poolmanager(*args, **kwargs)
        self.poolmanager.pool_classes_by_scheme = {
            "http": _tracking_pool(HTTPConnectionPool, self.inflight),
            "https": _tracking_pool(HTTPSConnectionPool, self.inflight),
        }


def _tracking_pool(pool_cls: type[HTTPConnectionPool], inflight: InflightSockets) -> type[HTTPConnectionPool]:
    base_conn = pool_cls.ConnectionCls

    class TrackingConnection(base_conn):  # type: ignore[misc, valid-type]
        def connect(self) -> None:
            super().connect()
            inflight.add(self.sock)

        def close(self) -> None:
            if self.sock is not None:
                inflight.discard(self.sock)
            super().close()

    class TrackingPool(pool_cls):  # type: ignore[misc, valid-type]
        ConnectionCls = TrackingConnection

    return TrackingPool


def _shutdown(sock: socket.socket) -> None:
    # the peer or urllib3 may have closed it already
    with suppress(OSError):
        sock.shutdown(socket.SHUT_RDWR)


class OpenTSDBClient:
    """Issues requests against one OpenTSDB base URL.

    Clients are cheap and meant to live for a single query; the session is
    not shared with other clients. Its http(s) adapters are replaced so that
    cancelling the query context interrupts the request in flight.
    """

    def __init__(
        self,
        url: str,
        session: requests.Session | None = None,
        basic_auth: tuple[str, str] | None = None,
        timeout: float = 30.0,
        chunk_size: int = 64 * 1024,
    ) -> None:
        self.url = url
        self.session = session if session is not None else requests.Session()
        self.basic_auth = basic_auth
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.inflight = InflightSockets()
        adapter = CancellableAdapter(self.inflight)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def query(self, ctx: QueryContext, request: QueryRequest) -> list[ResponseEntry]:
        """Run ``request`` and return the non-empty series it produced."""
        return parse_query_response(self.execute(ctx, request))

    def execute(self, ctx: QueryContext, request: QueryRequest) -> HTTPResult:
        body = orjson.dumps(request.to_payload())
        return self._send(
            ctx,
            "POST",
            QUERY_PATH,
            data=body,
            headers={"Content-Type": "application/json"},
        )

    def suggest_metrics(self, ctx: QueryContext, prefix: str = "", limit: int = 1000) -> list[str]:
        result = self._send(
            ctx,
            "GET",
            SUGGEST_PATH,
            params={"type": "metrics", "q": prefix, "max": limit},
        )
        return parse_suggest_response(result)

    def endpoint(self, sub_path: str) -> str:
        parts = urlsplit(self.url)
        path = posixpath.join(parts.path or "/", sub_path)
        return urlunsplit((parts.scheme, parts.netloc, path, "", ""))

    def close(self) -> None:
        self.session.close()

    # ------------------------------------------------------------------

    def _send(self, ctx: QueryContext, method: str, sub_path: str, **kwargs: Any) -> HTTPResult:
        self.inflight.reset()
        unregister_abort = ctx.on_cancel(self.inflight.abort)
        try:
            return self._round_trip(ctx, method, sub_path, **kwargs)
        finally:
            unregister_abort()

    def _round_trip(self, ctx: QueryContext, method: str, sub_path: str, **kwargs: Any) -> HTTPResult:
        ctx.raise_if_done()
        url = self.endpoint(sub_path)
        started = time.perf_counter()
        try:
            response = self.session.request(
                method,
                url,
                auth=self.basic_auth,
                timeout=self._timeout_for(ctx),
                stream=True,
                **kwargs,
            )
        except requests.Timeout as exc:
            _record(sub_path, "timeout", started)
            ctx.raise_if_done()
            raise QueryTimeout(f"OpenTSDB request to {url} timed out") from exc
        except requests.RequestException as exc:
            _record(sub_path, "error", started)
            # a cancel shuts the socket down; report the cancel, not the broken connection
            ctx.raise_if_done()
            logger.warning("OpenTSDB request to %s failed: %s", url, exc, extra={"opentsdb_endpoint": sub_path})
            raise TransportError(f"OpenTSDB request to {url} failed: {exc}") from exc

        unregister = ctx.on_cancel(response.close)
        try:
            body = self._read_body(ctx, response, url)
        finally:
            unregister()
            response.close()
        elapsed = _record(sub_path, str(response.status_code), started)
        logger.debug(
            "OpenTSDB %s %s -> %s",
            method,
            url,
            response.status_code,
            extra={
                "opentsdb_endpoint": sub_path,
                "status_code": response.status_code,
                "elapsed_ms": round(elapsed * 1000, 1),
                "response_bytes": len(body),
            },
        )
        return HTTPResult(
            url=url,
            status_code=response.status_code,
            reason=response.reason or "",
            body=body,
        )

    def _read_body(self, ctx: QueryContext, response: requests.Response, url: str) -> bytes:
        chunks: list[bytes] = []
        try:
            for chunk in response.iter_content(chunk_size=self.chunk_size):
                ctx.raise_if_done()
                chunks.append(chunk)
        except TSDBFrontendError:
            raise
        except Exception as exc:
            # a cancel closes the response under us; report the cancel, not the fallout
            ctx.raise_if_done()
            if not isinstance(exc, (requests.RequestException, OSError)):
                raise
            raise TransportError(f"reading OpenTSDB response from {url} failed: {exc}") from exc
        ctx.raise_if_done()
        return b"".join(chunks)

    def _timeout_for(self, ctx: QueryContext) -> float:
        remaining = ctx.remaining()
        if remaining is None:
            return self.timeout
        # urllib3 rejects a zero timeout
        return max(0.001, min(self.timeout, remaining))


def _record(endpoint: str, status: str, started: float) -> float:
    elapsed = time.perf_counter() - started
    OPENTSDB_REQUESTS.labels(endpoint=endpoint, status=status).inc()
    OPENTSDB_LATENCY.labels(endpoint=endpoint).observe(elapsed)
    return elapsed


__all__ = [
    "CancellableAdapter",
    "HTTPResult",
    "InflightSockets",
    "OpenTSDBClient",
    "QUERY_PATH",
    "SUGGEST_PATH",
    "SessionFactory",
]
