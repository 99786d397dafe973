"""Tests for label sets and matchers."""

import pytest

from tsdb_frontend.models.labels import METRIC_NAME, Label, Labels, Matcher, MatchType, matches_all


def test_labels_sorted_by_name() -> None:
    labels = Labels([Label("zone", "a"), Label(METRIC_NAME, "cpu"), Label("host", "web01")])
    assert [label.name for label in labels] == [METRIC_NAME, "host", "zone"]
    assert labels.get("host") == "web01"
    assert labels.get("missing") == ""
    assert labels.to_dict() == {METRIC_NAME: "cpu", "host": "web01", "zone": "a"}


def test_regex_matchers_are_anchored() -> None:
    matcher = Matcher("host", MatchType.REGEX, "web.*")
    assert matcher.matches("web01")
    assert not matcher.matches("oldweb01")
    negated = Matcher("host", MatchType.NOT_REGEX, "web.*")
    assert negated.matches("oldweb01")
    assert not negated.matches("web01")


def test_equality_matchers() -> None:
    assert Matcher("dc", MatchType.EQUAL, "lon").matches("lon")
    assert not Matcher("dc", MatchType.EQUAL, "lon").matches("nyc")
    assert Matcher("dc", MatchType.NOT_EQUAL, "lon").matches("nyc")
    assert Matcher("dc", MatchType.EQUAL, "").matches("")


def test_invalid_regex_rejected() -> None:
    with pytest.raises(ValueError):
        Matcher("host", MatchType.REGEX, "web(")


def test_matches_all_treats_absent_label_as_empty() -> None:
    labels = Labels.from_map({METRIC_NAME: "cpu", "host": "web01"})
    assert matches_all(labels, [Matcher("dc", MatchType.EQUAL, "")])
    assert not matches_all(labels, [Matcher("dc", MatchType.NOT_EQUAL, "")])
    assert matches_all(labels, [Matcher("host", MatchType.REGEX, "web0[0-9]")])
