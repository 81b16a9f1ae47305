"""Digest schedule checks.

Times are compared in minutes since midnight of the local clock, with no
wrap-around at midnight: a 23:55 digest time is not matched at 00:03.
"""

from datetime import datetime
from typing import Optional

from jobalerts.domain.models import DEFAULT_DIGEST_TIME, AlertFrequency, JobAlert
from jobalerts.utils.timestamps import ensure_utc, minutes_since_midnight, weekday_name

DEFAULT_WINDOW_MINUTES = 10


def within_digest_window(
    now: datetime, digest_time: str, window_minutes: int = DEFAULT_WINDOW_MINUTES
) -> bool:
    """True if ``now`` is at most ``window_minutes`` before or after ``digest_time``."""
    difference = abs(minutes_since_midnight(now) - minutes_since_midnight(digest_time))
    return difference <= window_minutes


def _on_local_clock(stamp: datetime, now: datetime) -> datetime:
    """Express a stored UTC stamp on the same clock as ``now``.

    Naive ``now`` values are read as UTC, matching how the pipeline stamps them.
    """
    stamp = ensure_utc(stamp)
    if now.tzinfo is None:
        return stamp.replace(tzinfo=None)
    return stamp.astimezone(now.tzinfo)


def sent_in_current_window(
    last_sent: Optional[datetime],
    now: datetime,
    digest_time: str,
    window_minutes: int = DEFAULT_WINDOW_MINUTES,
) -> bool:
    """True if a digest already went out today inside the window around ``digest_time``."""
    if last_sent is None:
        return False
    last_local = _on_local_clock(last_sent, now)
    if last_local.date() != now.date():
        return False
    return within_digest_window(last_local, digest_time, window_minutes)


def should_send_digest(
    alert: JobAlert, now: datetime, window_minutes: int = DEFAULT_WINDOW_MINUTES
) -> bool:
    """Decide whether ``alert`` is due for a digest at local time ``now``.

    Daily alerts are due inside the window around their digest time. Weekly
    alerts additionally need today to be their digest day. Instant alerts
    never get digests. An alert whose last digest was sent in the current
    window is not due again until the next one.
    """
    digest_time = alert.digest_time or DEFAULT_DIGEST_TIME

    if alert.frequency == AlertFrequency.DAILY:
        due = within_digest_window(now, digest_time, window_minutes)
    elif alert.frequency == AlertFrequency.WEEKLY:
        due = alert.digest_day == weekday_name(now) and within_digest_window(
            now, digest_time, window_minutes
        )
    else:
        return False

    return due and not sent_in_current_window(
        alert.last_digest_sent, now, digest_time, window_minutes
    )
