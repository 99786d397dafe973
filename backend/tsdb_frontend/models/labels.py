"""Label sets and label matchers as seen by the query engine."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping

METRIC_NAME = "__name__"


@dataclass(frozen=True, slots=True, order=True)
class Label:
    name: str
    value: str


class Labels(tuple):
    """Immutable label set ordered by label name."""

    def __new__(cls, labels: Iterable[Label] = ()) -> "Labels":
        return super().__new__(cls, sorted(labels, key=lambda label: label.name))

    @classmethod
    def from_map(cls, mapping: Mapping[str, str]) -> "Labels":
        return cls(Label(name, value) for name, value in mapping.items())

    def get(self, name: str) -> str:
        """Return the value for ``name``; absent labels read as the empty string."""
        for label in self:
            if label.name == name:
                return label.value
        return ""

    def to_dict(self) -> dict[str, str]:
        return {label.name: label.value for label in self}

    def __repr__(self) -> str:
        inner = ", ".join(f'{label.name}="{label.value}"' for label in self)
        return f"{{{inner}}}"


class MatchType(str, Enum):
    EQUAL = "="
    NOT_EQUAL = "!="
    REGEX = "=~"
    NOT_REGEX = "!~"


@dataclass(frozen=True, slots=True)
class Matcher:
    """A ``{name, kind, value}`` condition on one label.

    Regex matchers are anchored at both ends, as in Prometheus.
    """

    name: str
    type: MatchType
    value: str
    _pattern: re.Pattern[str] | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.type in (MatchType.REGEX, MatchType.NOT_REGEX):
            try:
                pattern = re.compile(f"^(?:{self.value})$")
            except re.error as exc:
                raise ValueError(f"invalid regex {self.value!r} for label {self.name!r}: {exc}") from exc
            object.__setattr__(self, "_pattern", pattern)

    def matches(self, value: str) -> bool:
        if self.type is MatchType.EQUAL:
            return value == self.value
        if self.type is MatchType.NOT_EQUAL:
            return value != self.value
        assert self._pattern is not None
        matched = self._pattern.match(value) is not None
        return matched if self.type is MatchType.REGEX else not matched

    def __str__(self) -> str:
        return f'{self.name}{self.type.value}"{self.value}"'


def matches_all(labels: Labels, matchers: Iterable[Matcher]) -> bool:
    return all(matcher.matches(labels.get(matcher.name)) for matcher in matchers)


__all__ = ["METRIC_NAME", "Label", "Labels", "MatchType", "Matcher", "matches_all"]
