"""Timestamp utilities.

Stored timestamps are always timezone-aware UTC. Digest scheduling works in
local wall-clock time (HH:MM strings and weekday names), so this module also
holds the helpers that convert between the two.
"""

import re
from datetime import datetime, timezone
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo

WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

_CLOCK_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Example:
        >>> now = utc_now()
        >>> now.tzinfo == timezone.utc
        True
    """
    return datetime.now(timezone.utc)


def local_now(tz_name: Optional[str] = None) -> datetime:
    """Get the current wall-clock time used for digest scheduling.

    Args:
        tz_name: IANA timezone name (e.g. "Africa/Harare"). None means the
            host's local timezone.

    Returns:
        Timezone-aware datetime in the requested zone
    """
    if tz_name:
        return datetime.now(ZoneInfo(tz_name))
    return datetime.now().astimezone()


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    Naive datetimes are treated as UTC; aware ones are converted.

    Example:
        >>> naive = datetime(2025, 11, 4, 12, 0, 0)
        >>> ensure_utc(naive).tzinfo == timezone.utc
        True
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def parse_iso_datetime(iso_string: str) -> Optional[datetime]:
    """Parse an ISO 8601 datetime string to a UTC datetime.

    Supports ``2025-11-04T12:00:00Z``, ``2025-11-04T12:00:00+00:00``,
    ``2025-11-04T12:00:00`` and ``2025-11-04``.

    Returns:
        Timezone-aware datetime in UTC, or None if parsing fails
    """
    if not iso_string or not iso_string.strip():
        return None

    cleaned = iso_string.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"

    try:
        return ensure_utc(datetime.fromisoformat(cleaned))
    except ValueError:
        return None


def format_timestamp(dt: datetime, include_microseconds: bool = False) -> str:
    """Format a datetime as ISO 8601 string in UTC with a 'Z' suffix.

    Example:
        >>> format_timestamp(datetime(2025, 11, 4, 12, 0, 0, tzinfo=timezone.utc))
        '2025-11-04T12:00:00Z'
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return ""

    if include_microseconds:
        return dt_utc.strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return dt_utc.strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_clock_time(value: str) -> Tuple[int, int]:
    """Parse an ``HH:MM`` wall-clock string.

    Args:
        value: Time string such as "09:00" or "9:30"

    Returns:
        Tuple of (hour, minute)

    Raises:
        ValueError: If the string is not a valid 24-hour clock time
    """
    match = _CLOCK_TIME_PATTERN.match(value.strip()) if value else None
    if not match:
        raise ValueError(f"Invalid clock time '{value}'. Expected HH:MM")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid clock time '{value}'. Hour must be 0-23, minute 0-59")

    return hour, minute


def minutes_since_midnight(value: Union[datetime, str]) -> int:
    """Convert a datetime (its wall-clock part) or an ``HH:MM`` string to minutes.

    Example:
        >>> minutes_since_midnight("09:05")
        545
    """
    if isinstance(value, datetime):
        return value.hour * 60 + value.minute

    hour, minute = parse_clock_time(value)
    return hour * 60 + minute


def weekday_name(dt: datetime) -> str:
    """Return the English weekday name of a datetime (e.g. "Monday")."""
    return WEEKDAY_NAMES[dt.weekday()]
