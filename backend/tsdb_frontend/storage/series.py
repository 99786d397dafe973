"""Cursor based series and sample iteration over decoded OpenTSDB results."""

from __future__ import annotations

from bisect import bisect_left
from typing import Iterator, Sequence

from tsdb_frontend.models.labels import Labels
from tsdb_frontend.models.opentsdb import ResponseEntry, Sample


class OpenTSDBSeriesIterator:
    """Cursor over samples ordered by timestamp; starts before the first sample."""

    def __init__(self, samples: Sequence[Sample], err: Exception | None = None) -> None:
        self._samples = samples
        self._timestamps = [sample.timestamp for sample in samples]
        self._cursor = -1
        self._err = err

    def next(self) -> bool:
        if self._cursor >= len(self._samples) - 1:
            return False
        self._cursor += 1
        return True

    def seek(self, t: int) -> bool:
        """Move to the first sample at or after ``t``.

        Past the end the cursor lands on the last sample, the closest point
        available. Only an empty series fails to seek.
        """
        if not self._samples:
            return False
        index = bisect_left(self._timestamps, t)
        if index == len(self._samples):
            index -= 1
        self._cursor = index
        return True

    def at(self) -> tuple[int, float]:
        if self._cursor < 0:
            raise IndexError("iterator is not positioned; call next() or seek() first")
        sample = self._samples[self._cursor]
        return sample.timestamp, sample.value

    def err(self) -> Exception | None:
        return self._err

    def __iter__(self) -> Iterator[tuple[int, float]]:
        while self.next():
            yield self.at()


class OpenTSDBSeries:
    """A decoded response entry seen as a labelled series."""

    def __init__(self, entry: ResponseEntry) -> None:
        self._labels = entry.labels()
        self._samples = entry.samples()

    def labels(self) -> Labels:
        return self._labels

    def iterator(self) -> OpenTSDBSeriesIterator:
        return OpenTSDBSeriesIterator(self._samples)

    def __repr__(self) -> str:
        return f"OpenTSDBSeries({self._labels!r}, samples={len(self._samples)})"


class OpenTSDBSeriesSet:
    """Cursor over the series of one select.

    A set built from a failed query carries the error and no series; it can
    still be iterated, it is simply empty.
    """

    def __init__(self, series: Sequence[OpenTSDBSeries] = (), err: Exception | None = None) -> None:
        self._series = list(series)
        self._cursor = -1
        self._err = err

    @classmethod
    def from_entries(cls, entries: Sequence[ResponseEntry]) -> "OpenTSDBSeriesSet":
        return cls([OpenTSDBSeries(entry) for entry in entries])

    @classmethod
    def from_error(cls, err: Exception) -> "OpenTSDBSeriesSet":
        return cls((), err=err)

    def next(self) -> bool:
        if self._cursor >= len(self._series) - 1:
            return False
        self._cursor += 1
        return True

    def at(self) -> OpenTSDBSeries:
        if self._cursor < 0:
            raise IndexError("series set is not positioned; call next() first")
        return self._series[self._cursor]

    def err(self) -> Exception | None:
        return self._err

    def __len__(self) -> int:
        return len(self._series)

    def __iter__(self) -> Iterator[OpenTSDBSeries]:
        while self.next():
            yield self.at()


__all__ = ["OpenTSDBSeriesIterator", "OpenTSDBSeries", "OpenTSDBSeriesSet"]
