"""Translate a time range and label matchers into an OpenTSDB query."""

from __future__ import annotations

import re
from typing import Iterable, Literal, Sequence

from tsdb_frontend.core.errors import UnsupportedMatcher
from tsdb_frontend.models.labels import METRIC_NAME, Matcher, MatchType
from tsdb_frontend.models.opentsdb import Filter, QueryRequest, SubQuery

FilterMode = Literal["native", "regexp"]


def build_request(
    start: int,
    end: int,
    matchers: Sequence[Matcher],
    filter_mode: FilterMode = "native",
) -> QueryRequest:
    """Build the single-query request for ``matchers`` over ``[start, end]``.

    Exactly one ``__name__="<metric>"`` matcher selects the metric; every
    other matcher becomes a tag filter. In ``regexp`` mode all tag matchers
    are sent as ``regexp`` filters whatever their kind. In ``native`` mode
    the kind is mapped onto OpenTSDB filter types where one exists and the
    remaining matchers are left to :func:`needs_post_filter` callers.
    """
    metric = _metric_name(matchers)
    filters = tuple(_filters(matchers, filter_mode))
    query = SubQuery(metric=metric, filters=filters)
    return QueryRequest(start=start, end=end, queries=(query,))


def needs_post_filter(matchers: Iterable[Matcher], filter_mode: FilterMode) -> bool:
    """True when the OpenTSDB answer must be re-checked against ``matchers``."""
    if filter_mode == "regexp":
        return False
    return any(matcher.name != METRIC_NAME for matcher in matchers)


def _metric_name(matchers: Sequence[Matcher]) -> str:
    name_matchers = [matcher for matcher in matchers if matcher.name == METRIC_NAME]
    if not name_matchers:
        raise UnsupportedMatcher("a __name__ matcher is required to select an OpenTSDB metric")
    if len(name_matchers) > 1:
        raise UnsupportedMatcher("only one __name__ matcher is supported")
    matcher = name_matchers[0]
    if matcher.type is not MatchType.EQUAL:
        raise UnsupportedMatcher(f"can't support {matcher.type.value} for metric names, only =")
    if not matcher.value:
        raise UnsupportedMatcher("metric name must not be empty")
    return matcher.value


def _filters(matchers: Sequence[Matcher], filter_mode: FilterMode) -> Iterable[Filter]:
    for matcher in matchers:
        if matcher.name == METRIC_NAME:
            continue
        if filter_mode == "regexp":
            yield Filter(type="regexp", tagk=matcher.name, filter=matcher.value)
            continue
        translated = _native_filter(matcher)
        if translated is not None:
            yield translated


def _native_filter(matcher: Matcher) -> Filter | None:
    # Empty values mean "label absent", which tag filters cannot express.
    if not matcher.value:
        return None
    if matcher.type is MatchType.REGEX:
        return Filter(type="regexp", tagk=matcher.name, filter=matcher.value)
    if matcher.type is MatchType.EQUAL:
        # literal_or splits on "|"
        if "|" in matcher.value:
            return Filter(type="regexp", tagk=matcher.name, filter=f"^{re.escape(matcher.value)}$")
        return Filter(type="literal_or", tagk=matcher.name, filter=matcher.value)
    if matcher.type is MatchType.NOT_EQUAL and "|" not in matcher.value:
        return Filter(type="not_literal_or", tagk=matcher.name, filter=matcher.value)
    return None


__all__ = ["FilterMode", "build_request", "needs_post_filter"]
