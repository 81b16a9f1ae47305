"""Utility functions for time handling."""

from .timestamps import (
    WEEKDAY_NAMES,
    ensure_utc,
    format_timestamp,
    local_now,
    minutes_since_midnight,
    parse_clock_time,
    parse_iso_datetime,
    utc_now,
    weekday_name,
)

__all__ = [
    "WEEKDAY_NAMES",
    "utc_now",
    "local_now",
    "ensure_utc",
    "parse_iso_datetime",
    "format_timestamp",
    "parse_clock_time",
    "minutes_since_midnight",
    "weekday_name",
]
