"""Storage contract implementation backed by OpenTSDB."""

from .querier import OpenTSDBQuerier, OpenTSDBQueryable
from .series import OpenTSDBSeries, OpenTSDBSeriesIterator, OpenTSDBSeriesSet

__all__ = [
    "OpenTSDBQuerier",
    "OpenTSDBQueryable",
    "OpenTSDBSeries",
    "OpenTSDBSeriesIterator",
    "OpenTSDBSeriesSet",
]
