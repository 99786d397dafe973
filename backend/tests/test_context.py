"""Tests for query context cancellation."""

from tsdb_frontend.core.context import QueryContext
from tsdb_frontend.core.errors import QueryCanceled, QueryTimeout


def test_background_context_never_expires() -> None:
    ctx = QueryContext.background()
    assert ctx.err() is None
    assert ctx.remaining() is None


def test_cancel_runs_callbacks_once() -> None:
    ctx = QueryContext.background()
    calls: list[str] = []
    ctx.on_cancel(lambda: calls.append("a"))
    unregister = ctx.on_cancel(lambda: calls.append("b"))
    unregister()
    ctx.cancel()
    ctx.cancel()
    assert calls == ["a"]
    assert isinstance(ctx.err(), QueryCanceled)


def test_callback_registered_after_cancel_runs_immediately() -> None:
    ctx = QueryContext.background()
    ctx.cancel()
    calls: list[int] = []
    ctx.on_cancel(lambda: calls.append(1))
    assert calls == [1]


def test_deadline_reports_timeout() -> None:
    ctx = QueryContext.with_timeout(0)
    assert isinstance(ctx.err(), QueryTimeout)
    assert ctx.remaining() == 0.0
