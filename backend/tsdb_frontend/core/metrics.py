"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "tsdbf_requests_total",
    "Total HTTP requests served",
    labelnames=("endpoint", "method", "status"),
    registry=REGISTRY,
)

REQUEST_LATENCY = Histogram(
    "tsdbf_request_latency_seconds",
    "Latency of HTTP requests served",
    labelnames=("endpoint", "method"),
    registry=REGISTRY,
)

OPENTSDB_REQUESTS = Counter(
    "tsdbf_opentsdb_requests_total",
    "Requests sent to OpenTSDB",
    labelnames=("endpoint", "status"),
    registry=REGISTRY,
)

OPENTSDB_LATENCY = Histogram(
    "tsdbf_opentsdb_request_seconds",
    "Round trip time of OpenTSDB requests",
    labelnames=("endpoint",),
    registry=REGISTRY,
)

SERIES_RETURNED = Histogram(
    "tsdbf_series_returned",
    "Series returned per select",
    buckets=(0, 1, 5, 10, 50, 100, 500, 1000, 5000),
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "OPENTSDB_REQUESTS",
    "OPENTSDB_LATENCY",
    "SERIES_RETURNED",
    "metrics_response",
]
