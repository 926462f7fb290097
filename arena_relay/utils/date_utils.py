"""
Date Utilities Module for Arena Relay.

Timezone-aware helpers shared by the tracker, the poller and the wire codecs.
"""

from datetime import datetime, timezone
from typing import Optional, Union


UTC = timezone.utc

# Numeric timestamps below this are epoch seconds, otherwise epoch milliseconds.
# 1e11 seconds is the year 5138; 1e11 milliseconds is March 1973.
EPOCH_MS_THRESHOLD = 1e11


def now_utc() -> datetime:
    """
    Get current time in UTC.

    Returns:
        Current datetime in UTC
    """
    return datetime.now(UTC)


def make_aware(dt: datetime) -> datetime:
    """Attach UTC to a naive datetime, leave aware ones untouched."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def to_epoch_ms(dt: datetime) -> int:
    """Convert a datetime to integer epoch milliseconds."""
    return int(make_aware(dt).timestamp() * 1000)


def from_epoch_ms(value: Union[int, float]) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=UTC)


def from_epoch(value: Union[int, float]) -> datetime:
    """Convert epoch seconds or epoch milliseconds to an aware UTC datetime."""
    if abs(value) < EPOCH_MS_THRESHOLD:
        return datetime.fromtimestamp(value, tz=UTC)
    return from_epoch_ms(value)


def parse_datetime(value: Optional[Union[str, int, float, datetime]]) -> datetime:
    """
    Parse a timestamp from the feed or an API payload.

    Accepts ISO strings (a trailing ``Z`` is allowed), epoch seconds or
    milliseconds (told apart by magnitude) or datetimes. ``None`` yields the
    current time.

    Args:
        value: Value to parse

    Returns:
        Aware UTC datetime
    """
    if value is None:
        return now_utc()
    if isinstance(value, datetime):
        return make_aware(value)
    if isinstance(value, (int, float)):
        return from_epoch(value)

    text = value.strip()
    if text.isdigit():
        return from_epoch(int(text))
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return make_aware(datetime.fromisoformat(text))
