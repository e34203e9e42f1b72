"""Timestamp helpers shared by the models, caches, and aggregation."""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an upstream ISO 8601 timestamp into an aware UTC datetime.

    Accepts a trailing 'Z' and naive strings (assumed UTC). Returns None
    for empty values; raises ValueError for anything unparsable.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    else:
        raise ValueError(f'Unsupported timestamp: {value!r}')

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime the way the upstream feeds do (UTC, 'Z' suffix)."""
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def floor_to_interval(dt: datetime, width: timedelta) -> datetime:
    """Round a timestamp down to the enclosing interval boundary (epoch aligned)."""
    width_s = int(width.total_seconds())
    epoch = int(dt.timestamp())
    return datetime.fromtimestamp(epoch - epoch % width_s, tz=timezone.utc)
