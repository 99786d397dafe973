"""Storage contract consumed by a PromQL query engine.

Only the read half is implemented by this package; the write half exists so
that callers can discover it is unsupported.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tsdb_frontend.core.context import QueryContext
from tsdb_frontend.models.labels import Labels, Matcher


@runtime_checkable
class SeriesIterator(Protocol):
    """Cursor over the samples of one series."""

    def next(self) -> bool:
        ...

    def seek(self, t: int) -> bool:
        ...

    def at(self) -> tuple[int, float]:
        ...

    def err(self) -> Exception | None:
        ...


@runtime_checkable
class Series(Protocol):
    def labels(self) -> Labels:
        ...

    def iterator(self) -> SeriesIterator:
        ...


@runtime_checkable
class SeriesSet(Protocol):
    """Cursor over the series returned by one select."""

    def next(self) -> bool:
        ...

    def at(self) -> Series:
        ...

    def err(self) -> Exception | None:
        ...


@runtime_checkable
class Querier(Protocol):
    def select(self, ctx: QueryContext, *matchers: Matcher) -> SeriesSet:
        ...

    def label_values(self, ctx: QueryContext, name: str) -> list[str]:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class Appender(Protocol):
    def add(self, labels: Labels, t: int, v: float) -> None:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


@runtime_checkable
class Queryable(Protocol):
    def querier(self, mint: int, maxt: int) -> Querier:
        ...

    def appender(self) -> Appender:
        ...

    def close(self) -> None:
        ...


__all__ = ["SeriesIterator", "Series", "SeriesSet", "Querier", "Appender", "Queryable"]
