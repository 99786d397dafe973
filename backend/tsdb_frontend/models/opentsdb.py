"""OpenTSDB wire models and their conversion into samples and labels."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from tsdb_frontend.models.labels import METRIC_NAME, Label, Labels

FilterType = Literal["regexp", "literal_or", "not_literal_or"]


class Filter(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: FilterType = "regexp"
    tagk: str
    filter: str
    group_by: bool = Field(default=False, alias="groupBy")


class SubQuery(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    aggregator: str = "none"
    metric: str
    ms_resolution: bool = Field(default=True, alias="msResolution")
    filters: tuple[Filter, ...] = ()


class QueryRequest(BaseModel):
    """Body of ``POST /api/query``."""

    model_config = ConfigDict(frozen=True)

    start: int
    end: int
    queries: tuple[SubQuery, ...]

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json", by_alias=True)
        for query in payload["queries"]:
            if not query["filters"]:
                del query["filters"]
        return payload


@dataclass(frozen=True, slots=True)
class Sample:
    timestamp: int
    value: float


class ResponseEntry(BaseModel):
    """One series of an ``/api/query`` answer."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    tags: dict[str, str] = Field(default_factory=dict)
    metric: str
    # keys are epoch seconds; anything else fails validation and surfaces as a decode error
    dps: dict[int, float] = Field(default_factory=dict)

    def samples(self) -> list[Sample]:
        """Datapoints as millisecond samples in ascending timestamp order."""
        samples = [Sample(ts * 1000, value) for ts, value in self.dps.items()]
        samples.sort(key=lambda sample: sample.timestamp)
        return samples

    def labels(self) -> Labels:
        return Labels([*Labels.from_map(self.tags), Label(METRIC_NAME, self.metric)])


__all__ = ["Filter", "FilterType", "SubQuery", "QueryRequest", "Sample", "ResponseEntry"]
