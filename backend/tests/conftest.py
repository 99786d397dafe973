"""Test fixtures for the OpenTSDB frontend."""

from __future__ import annotations

import io
import os
import sys
from pathlib import Path
from typing import Any

import orjson
import pytest
import requests

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from tsdb_frontend.core.config import Settings  # noqa: E402


class FakeSession(requests.Session):
    """A ``requests.Session`` that replays queued responses or errors instead of sending."""

    def __init__(self, *responses: Any) -> None:
        super().__init__()
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True
        super().close()


def make_response(status: int = 200, body: Any = b"[]", reason: str = "OK", raw: Any = None) -> requests.Response:
    if not isinstance(body, (bytes, str)):
        body = orjson.dumps(body)
    if isinstance(body, str):
        body = body.encode("utf-8")
    response = requests.Response()
    response.status_code = status
    response.reason = reason
    response.raw = raw if raw is not None else io.BytesIO(body)
    return response


@pytest.fixture(autouse=True)
def reset_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host environment from leaking into settings."""
    for key in list(os.environ):
        if key.startswith("TSDBF_") or key in {"ADDR", "OPENTSDB_URL"}:
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("TSDBF_CONFIG", str(BACKEND_ROOT / "tests" / "missing-config.yaml"))


@pytest.fixture
def settings() -> Settings:
    return Settings(opentsdb_url="http://tsdb.example:4242", log_json=False)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def dps_entries() -> list[dict[str, Any]]:
    return [
        {
            "metric": "cpu",
            "tags": {"host": "web01", "dc": "lon"},
            "dps": {"1500000020": 2.0, "1500000010": 1.0},
        },
        {
            "metric": "cpu",
            "tags": {"host": "db01", "dc": "lon"},
            "dps": {"1500000010": 5.5},
        },
        {
            "metric": "cpu",
            "tags": {"host": "idle01", "dc": "lon"},
            "dps": {},
        },
    ]
