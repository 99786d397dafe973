"""Tests for the queryable/querier adapter."""

import pytest

from conftest import FakeSession, make_response
from tsdb_frontend.core.config import Settings
from tsdb_frontend.core.context import QueryContext
from tsdb_frontend.core.errors import (
    DecodeError,
    QueryCanceled,
    TransportError,
    UnsupportedMatcher,
    UnsupportedOperation,
)
from tsdb_frontend.models.labels import METRIC_NAME, Matcher, MatchType
from tsdb_frontend.storage.querier import OpenTSDBQueryable


def _cpu() -> Matcher:
    return Matcher(METRIC_NAME, MatchType.EQUAL, "cpu")


def _hosts(series_set) -> list[str]:
    return [series.labels().get("host") for series in series_set]


def test_select_returns_non_empty_series(settings: Settings, fake_session: FakeSession, dps_entries) -> None:
    fake_session.queue(make_response(200, dps_entries))
    querier = OpenTSDBQueryable(settings, session_factory=lambda: fake_session).querier(100, 200)

    series_set = querier.select(QueryContext.background(), _cpu())

    assert series_set.err() is None
    assert _hosts(series_set) == ["web01", "db01"]
    request = fake_session.calls[0]
    assert request["url"] == "http://tsdb.example:4242/api/query"


def test_select_passes_time_range(settings: Settings, fake_session: FakeSession) -> None:
    import orjson

    fake_session.queue(make_response(200, b"[]"))
    OpenTSDBQueryable(settings, session_factory=lambda: fake_session).querier(100, 200).select(
        QueryContext.background(), _cpu()
    )
    payload = orjson.loads(fake_session.calls[0]["data"])
    assert (payload["start"], payload["end"]) == (100, 200)


def test_empty_response_is_empty_set(settings: Settings, fake_session: FakeSession) -> None:
    fake_session.queue(make_response(200, b"[]"))
    querier = OpenTSDBQueryable(settings, session_factory=lambda: fake_session).querier(0, 10)
    series_set = querier.select(QueryContext.background(), _cpu())
    assert series_set.err() is None
    assert not series_set.next()


def test_unknown_metric_is_empty_set(settings: Settings, fake_session: FakeSession) -> None:
    fake_session.queue(make_response(400, b"No such name for 'metrics': 'cpu'", "Bad Request"))
    querier = OpenTSDBQueryable(settings, session_factory=lambda: fake_session).querier(0, 10)
    series_set = querier.select(QueryContext.background(), _cpu())
    assert series_set.err() is None
    assert list(series_set) == []


def test_failures_are_attached_to_the_set(settings: Settings, fake_session: FakeSession) -> None:
    fake_session.queue(make_response(500, b"oops", "Internal Server Error"))
    querier = OpenTSDBQueryable(settings, session_factory=lambda: fake_session).querier(0, 10)
    series_set = querier.select(QueryContext.background(), _cpu())
    assert isinstance(series_set.err(), TransportError)
    assert list(series_set) == []


def test_malformed_datapoints_are_attached_to_the_set(settings: Settings, fake_session: FakeSession) -> None:
    fake_session.queue(make_response(200, [{"metric": "cpu", "tags": {}, "dps": {"abc": 1.0}}]))
    querier = OpenTSDBQueryable(settings, session_factory=lambda: fake_session).querier(0, 10)
    series_set = querier.select(QueryContext.background(), _cpu())
    assert isinstance(series_set.err(), DecodeError)
    assert list(series_set) == []


def test_unsupported_matcher_is_attached_to_the_set(settings: Settings, fake_session: FakeSession) -> None:
    querier = OpenTSDBQueryable(settings, session_factory=lambda: fake_session).querier(0, 10)
    series_set = querier.select(QueryContext.background(), Matcher(METRIC_NAME, MatchType.REGEX, "cpu.*"))
    assert isinstance(series_set.err(), UnsupportedMatcher)
    assert fake_session.calls == []


def test_canceled_context_yields_canceled_set(settings: Settings, fake_session: FakeSession) -> None:
    ctx = QueryContext.background()
    ctx.cancel()
    querier = OpenTSDBQueryable(settings, session_factory=lambda: fake_session).querier(0, 10)
    series_set = querier.select(ctx, _cpu())
    assert isinstance(series_set.err(), QueryCanceled)
    assert list(series_set) == []


def test_native_mode_filters_client_side(settings: Settings, fake_session: FakeSession, dps_entries) -> None:
    fake_session.queue(make_response(200, dps_entries))
    querier = OpenTSDBQueryable(settings, session_factory=lambda: fake_session).querier(0, 10)
    series_set = querier.select(QueryContext.background(), _cpu(), Matcher("host", MatchType.NOT_REGEX, "web.*"))
    assert _hosts(series_set) == ["db01"]


def test_regexp_mode_trusts_opentsdb(settings: Settings, fake_session: FakeSession, dps_entries) -> None:
    settings.filter_mode = "regexp"
    fake_session.queue(make_response(200, dps_entries))
    querier = OpenTSDBQueryable(settings, session_factory=lambda: fake_session).querier(0, 10)
    series_set = querier.select(QueryContext.background(), _cpu(), Matcher("host", MatchType.NOT_REGEX, "web.*"))
    assert _hosts(series_set) == ["web01", "db01"]


def test_label_values_for_metric_name(settings: Settings, fake_session: FakeSession) -> None:
    fake_session.queue(make_response(200, ["mem", "cpu", "mem"]))
    querier = OpenTSDBQueryable(settings, session_factory=lambda: fake_session).querier(0, 10)
    assert querier.label_values(QueryContext.background(), METRIC_NAME) == ["cpu", "mem"]
    assert fake_session.calls[0]["params"]["max"] == settings.suggest_limit


def test_label_values_for_other_labels_unsupported(settings: Settings, fake_session: FakeSession) -> None:
    querier = OpenTSDBQueryable(settings, session_factory=lambda: fake_session).querier(0, 10)
    with pytest.raises(UnsupportedOperation):
        querier.label_values(QueryContext.background(), "host")


def test_basic_auth_from_settings(fake_session: FakeSession) -> None:
    settings = Settings(basic_auth_user="reader", basic_auth_password="s3cret")
    fake_session.queue(make_response(200, b"[]"))
    OpenTSDBQueryable(settings, session_factory=lambda: fake_session).querier(0, 10).select(
        QueryContext.background(), _cpu()
    )
    assert fake_session.calls[0]["auth"] == ("reader", "s3cret")


def test_each_querier_gets_its_own_session(settings: Settings) -> None:
    sessions: list[FakeSession] = []

    def factory() -> FakeSession:
        sessions.append(FakeSession())
        return sessions[-1]

    queryable = OpenTSDBQueryable(settings, session_factory=factory)
    first = queryable.querier(0, 10)
    second = queryable.querier(0, 10)
    assert first.client.session is not second.client.session
    first.close()
    assert sessions[0].closed and not sessions[1].closed


def test_write_path_is_unsupported(settings: Settings) -> None:
    with pytest.raises(UnsupportedOperation):
        OpenTSDBQueryable(settings).appender()
