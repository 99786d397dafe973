"""Parser for bare PromQL vector selectors such as ``up{job=~"api.*"}``."""

from __future__ import annotations

import re

from tsdb_frontend.core.errors import SelectorError
from tsdb_frontend.models.labels import METRIC_NAME, Matcher, MatchType

_METRIC_RE = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*")
_LABEL_RE = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")
_OP_RE = re.compile(r"=~|!~|!=|=")
_SPACE_RE = re.compile(r"\s*")
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "'": "'", "`": "`"}


class _Scanner:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def skip_space(self) -> None:
        match = _SPACE_RE.match(self.text, self.pos)
        if match:
            self.pos = match.end()

    def peek(self) -> str:
        self.skip_space()
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def expect(self, char: str) -> None:
        if self.peek() != char:
            raise self.error(f"expected {char!r}")
        self.pos += 1

    def token(self, pattern: re.Pattern[str], what: str) -> str:
        self.skip_space()
        match = pattern.match(self.text, self.pos)
        if not match:
            raise self.error(f"expected {what}")
        self.pos = match.end()
        return match.group(0)

    def string(self) -> str:
        quote = self.peek()
        if quote not in {'"', "'", "`"}:
            raise self.error("expected quoted label value")
        self.pos += 1
        chars: list[str] = []
        while self.pos < len(self.text):
            char = self.text[self.pos]
            self.pos += 1
            if char == quote:
                return "".join(chars)
            if char == "\\" and quote != "`":
                if self.pos >= len(self.text):
                    break
                escaped = self.text[self.pos]
                self.pos += 1
                chars.append(_ESCAPES.get(escaped, "\\" + escaped))
                continue
            chars.append(char)
        raise SelectorError(f"unterminated string in selector {self.text!r}")

    def at_end(self) -> bool:
        return self.peek() == ""

    def error(self, message: str) -> SelectorError:
        return SelectorError(f"{message} at position {self.pos} in selector {self.text!r}")


def parse_selector(text: str) -> list[Matcher]:
    """Return the matchers of ``metric{label op "value", ...}``."""
    scanner = _Scanner(text)
    matchers: list[Matcher] = []
    if scanner.peek() not in {"{", ""}:
        metric = scanner.token(_METRIC_RE, "metric name")
        matchers.append(Matcher(METRIC_NAME, MatchType.EQUAL, metric))
    if scanner.peek() == "{":
        scanner.expect("{")
        while scanner.peek() != "}":
            name = scanner.token(_LABEL_RE, "label name")
            op = MatchType(scanner.token(_OP_RE, "match operator"))
            value = scanner.string()
            try:
                matchers.append(Matcher(name, op, value))
            except ValueError as exc:
                raise SelectorError(str(exc)) from exc
            if scanner.peek() == ",":
                scanner.expect(",")
            elif scanner.peek() != "}":
                raise scanner.error("expected ',' or '}'")
        scanner.expect("}")
    if not scanner.at_end():
        raise scanner.error("unexpected trailing input")
    if not matchers:
        raise SelectorError(f"selector {text!r} has no matchers")
    return matchers


__all__ = ["parse_selector"]
