"""Cancellation handle passed from the inbound request down to the transport."""

from __future__ import annotations

import threading
import time
from typing import Callable

from tsdb_frontend.core.errors import QueryAborted, QueryCanceled, QueryTimeout


class QueryContext:
    """Cancelable scope with an optional monotonic deadline.

    A context is created per inbound request. Layers below check it before
    blocking work and register callbacks that release resources (open HTTP
    responses) when the owner cancels.
    """

    def __init__(self, deadline: float | None = None) -> None:
        self._deadline = deadline
        self._canceled = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @classmethod
    def background(cls) -> "QueryContext":
        """Context that never expires unless canceled."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float) -> "QueryContext":
        return cls(deadline=time.monotonic() + seconds)

    @property
    def deadline(self) -> float | None:
        return self._deadline

    @property
    def canceled(self) -> bool:
        return self._canceled.is_set()

    def remaining(self) -> float | None:
        """Seconds left before the deadline, ``None`` when unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self) -> None:
        with self._lock:
            if self._canceled.is_set():
                return
            self._canceled.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register ``callback`` to run on cancel; returns an unregister function.

        If the context is already canceled the callback runs immediately.
        """
        with self._lock:
            if not self._canceled.is_set():
                self._callbacks.append(callback)
                return lambda: self._discard(callback)
        callback()
        return lambda: None

    def err(self) -> QueryAborted | None:
        if self._canceled.is_set():
            return QueryCanceled("query canceled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return QueryTimeout("query deadline exceeded")
        return None

    def raise_if_done(self) -> None:
        error = self.err()
        if error is not None:
            raise error

    def _discard(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)


__all__ = ["QueryContext"]
