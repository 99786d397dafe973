"""Time helpers."""

from __future__ import annotations

import math
import time
from datetime import datetime, timezone

from tsdb_frontend.core.errors import InvalidParameter


def now_s() -> int:
    """Return current timestamp in whole seconds."""
    return int(time.time())


def parse_time(value: str) -> int:
    """Parse a Prometheus API timestamp (unix seconds or RFC3339) to epoch seconds."""
    try:
        seconds = float(value)
    except ValueError:
        seconds = None
    if seconds is not None:
        if not math.isfinite(seconds):
            raise InvalidParameter(f"cannot parse {value!r} to a valid timestamp")
        return int(seconds)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise InvalidParameter(f"cannot parse {value!r} to a valid timestamp") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())
