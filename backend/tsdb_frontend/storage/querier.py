"""Read-only storage adapter wiring the OpenTSDB pipeline per query."""

from __future__ import annotations

from typing import Sequence

import requests

from tsdb_frontend.core.config import Settings
from tsdb_frontend.core.context import QueryContext
from tsdb_frontend.core.errors import TSDBFrontendError, UnsupportedOperation
from tsdb_frontend.core.logging import get_logger
from tsdb_frontend.core.metrics import SERIES_RETURNED
from tsdb_frontend.models.labels import METRIC_NAME, Matcher, matches_all
from tsdb_frontend.opentsdb.request_builder import FilterMode, build_request, needs_post_filter
from tsdb_frontend.opentsdb.transport import OpenTSDBClient, SessionFactory
from tsdb_frontend.storage.interface import Appender
from tsdb_frontend.storage.series import OpenTSDBSeries, OpenTSDBSeriesSet

logger = get_logger(__name__)


class OpenTSDBQuerier:
    """Answers selects over a fixed ``[mint, maxt]`` range in epoch seconds."""

    def __init__(
        self,
        client: OpenTSDBClient,
        mint: int,
        maxt: int,
        filter_mode: FilterMode = "native",
        suggest_limit: int = 1000,
    ) -> None:
        self.client = client
        self.mint = mint
        self.maxt = maxt
        self.filter_mode = filter_mode
        self.suggest_limit = suggest_limit

    def select(self, ctx: QueryContext, *matchers: Matcher) -> OpenTSDBSeriesSet:
        try:
            request = build_request(self.mint, self.maxt, matchers, self.filter_mode)
            entries = self.client.query(ctx, request)
        except TSDBFrontendError as exc:
            logger.debug(
                "select %s failed: %s",
                _describe(matchers),
                exc,
                extra={"error_kind": type(exc).__name__},
            )
            return OpenTSDBSeriesSet.from_error(exc)

        series = [OpenTSDBSeries(entry) for entry in entries]
        if needs_post_filter(matchers, self.filter_mode):
            series = [item for item in series if matches_all(item.labels(), matchers)]
        SERIES_RETURNED.observe(len(series))
        logger.debug(
            "select %s returned %s series",
            _describe(matchers),
            len(series),
            extra={"series": len(series), "mint": self.mint, "maxt": self.maxt},
        )
        return OpenTSDBSeriesSet(series)

    def label_values(self, ctx: QueryContext, name: str) -> list[str]:
        """Metric names known to OpenTSDB; other labels cannot be enumerated."""
        if name != METRIC_NAME:
            raise UnsupportedOperation(f"label values are only available for {METRIC_NAME}, not {name!r}")
        names = self.client.suggest_metrics(ctx, prefix="", limit=self.suggest_limit)
        return sorted(set(names))

    def close(self) -> None:
        self.client.close()


class OpenTSDBQueryable:
    """Factory of per-query queriers bound to one OpenTSDB endpoint."""

    def __init__(self, settings: Settings, session_factory: SessionFactory = requests.Session) -> None:
        self.settings = settings
        self.session_factory = session_factory

    def querier(self, mint: int, maxt: int) -> OpenTSDBQuerier:
        client = OpenTSDBClient(
            url=self.settings.opentsdb_url,
            session=self.session_factory(),
            basic_auth=self.settings.basic_auth,
            timeout=self.settings.request_timeout,
        )
        return OpenTSDBQuerier(
            client,
            mint,
            maxt,
            filter_mode=self.settings.filter_mode,
            suggest_limit=self.settings.suggest_limit,
        )

    def appender(self) -> Appender:
        raise UnsupportedOperation("OpenTSDB frontend is read-only; appending samples is not supported")

    def close(self) -> None:
        return None


def _describe(matchers: Sequence[Matcher]) -> str:
    return "{" + ", ".join(str(matcher) for matcher in matchers) + "}"


__all__ = ["OpenTSDBQuerier", "OpenTSDBQueryable"]
