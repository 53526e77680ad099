"""Utility functions for lingua application."""

import math
from datetime import datetime, timedelta


def local_now() -> datetime:
    """Current local time as a timezone-aware datetime."""
    return datetime.now().astimezone()


def to_iso(value: datetime | None) -> str | None:
    """Serialize a datetime to an ISO-8601 string."""
    if value is None:
        return None
    return value.isoformat()


def parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp. Naive values are taken as local time."""
    if not value:
        return None
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def day_key(value: datetime) -> str:
    """Calendar day of a datetime as YYYY-MM-DD."""
    return value.date().isoformat()


def previous_day_key(value: datetime) -> str:
    """Calendar day before the given datetime as YYYY-MM-DD."""
    return (value.date() - timedelta(days=1)).isoformat()


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def in_hour_window(hour: int, window: tuple[int, int]) -> bool:
    """Check whether an hour falls in a [start, end) window."""
    start, end = window
    return start <= hour < end


def list_value(value) -> list:
    """A stored value if it is a list, otherwise an empty list."""
    return value if isinstance(value, list) else []
