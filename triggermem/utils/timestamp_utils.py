"""
Timestamp utilities for consistent time handling across the engine.

All timestamps are timezone-aware UTC datetimes in memory and ISO-8601
strings on disk. Calendar days are UTC calendar days.
"""

from datetime import date, datetime, timezone
from typing import Callable, Optional

SECONDS_PER_DAY = 24 * 3600

# A clock is any zero-argument callable returning an aware datetime.
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as an ISO-8601 UTC string (None stays None)."""
    if value is None:
        return None
    return _as_utc(value).isoformat()


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string into an aware UTC datetime.

    Accepts the trailing ``Z`` form written by browsers. Returns None for
    empty or unparsable input.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return _as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` marker, None if missing or malformed."""
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def days_between(later: datetime, earlier: datetime) -> int:
    """Whole days elapsed from ``earlier`` to ``later``, floored."""
    seconds = (_as_utc(later) - _as_utc(earlier)).total_seconds()
    return int(seconds // SECONDS_PER_DAY)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
