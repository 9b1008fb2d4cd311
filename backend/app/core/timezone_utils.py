"""
Timezone utilities for the mentoring platform.

All persisted instants are UTC. SQLite hands datetimes back naive, so every
value read from the store goes through ``ensure_utc`` before comparison.
"""

from datetime import datetime, timezone
from typing import Optional

import pytz


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive values are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_zone(dt: datetime, tz_name: Optional[str]) -> datetime:
    """Convert an instant to the named timezone, falling back to UTC for unknown names."""
    try:
        zone = pytz.timezone(tz_name or "UTC")
    except pytz.UnknownTimeZoneError:
        zone = pytz.UTC
    return ensure_utc(dt).astimezone(zone)


def is_valid_timezone(tz_name: str) -> bool:
    try:
        pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        return False
    return True


def isoformat_z(dt: datetime) -> str:
    """Render an instant as second-precision ISO-8601 with a trailing Z."""
    return ensure_utc(dt).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_iso_datetime(value: str) -> datetime:
    """
    Parse an ISO-8601 instant, accepting a trailing ``Z``.

    Values without an offset are taken as UTC.

    Raises:
        ValueError: the value is not an ISO-8601 datetime
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Empty datetime value")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))
