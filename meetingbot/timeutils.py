"""Millisecond timestamp helpers."""

import time
from datetime import datetime, timezone


def wall_clock_ms() -> int:
    """Current epoch time in integer milliseconds."""
    return int(time.time() * 1000)


def iso_from_ms(timestamp_ms: int) -> str:
    """UTC ISO-8601 with millisecond precision and a 'Z' suffix (2024-01-31T09:30:00.000Z)."""
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def iso_date_from_ms(timestamp_ms: int) -> str:
    """UTC calendar date (YYYY-MM-DD)."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")
