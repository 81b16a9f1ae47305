"""Core domain models for users, jobs and job alerts.

This module defines the data structures used throughout the application:
- User: read-only owner record used to address notifications
- Job: job posting owned by the job board (read-only for the alert engine)
- AlertCriteria: saved search filters of an alert
- MatchedJob: one recorded match of a job against an alert
- JobAlert: a saved search with delivery preferences and match bookkeeping
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from jobalerts.utils.timestamps import WEEKDAY_NAMES, ensure_utc, parse_clock_time

DEFAULT_DIGEST_TIME = "09:00"


class JobStatus(str, Enum):
    """Lifecycle status of a job posting."""

    ACTIVE = "active"
    CLOSED = "closed"
    FILLED = "filled"


class EmploymentType(str, Enum):
    """Employment types offered on the job board."""

    FULL_TIME = "Full-time"
    PART_TIME = "Part-time"
    CONTRACT = "Contract"
    TEMPORARY = "Temporary"


class AlertFrequency(str, Enum):
    """How often an alert notifies its owner."""

    INSTANT = "instant"
    DAILY = "daily"
    WEEKLY = "weekly"


class NotificationMethod(str, Enum):
    """Delivery channel. Only email is delivered."""

    EMAIL = "email"
    SMS = "sms"
    BOTH = "both"


def _as_utc(v: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(v)


class User(BaseModel):
    """Owner of job alerts."""

    id: int
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    user_type: str = "jobseeker"

    @property
    def display_name(self) -> str:
        return self.first_name or (self.email.split("@")[0] if self.email else "there")


class Job(BaseModel):
    """Job posting as published on the job board."""

    id: int
    title: str
    position: str
    description: str = ""
    status: JobStatus = JobStatus.ACTIVE
    location_city: Optional[str] = None
    location_province: Optional[str] = None
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    salary_currency: str = "ZWL"
    employment_type: Optional[str] = None
    featured: bool = False
    featured_until: Optional[datetime] = None
    application_deadline: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("featured_until", "application_deadline", "expires_at", "created_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return _as_utc(v)

    @property
    def location(self) -> str:
        """City and province joined for display."""
        return " ".join(part for part in (self.location_city, self.location_province) if part)

    @property
    def is_active(self) -> bool:
        return self.status == JobStatus.ACTIVE

    model_config = {"use_enum_values": True, "validate_default": True}


class AlertCriteria(BaseModel):
    """Saved search filters. Empty lists and None bounds impose no constraint."""

    positions: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)
    employment_types: List[str] = Field(default_factory=list)
    salary_min: Optional[float] = Field(None, ge=0)
    salary_max: Optional[float] = Field(None, ge=0)

    @field_validator("positions", "locations", "employment_types")
    @classmethod
    def strip_values(cls, v: List[str]) -> List[str]:
        """Strip whitespace, drop empty entries and duplicates (order kept)."""
        cleaned = []
        for value in v:
            stripped = value.strip()
            if stripped and stripped not in cleaned:
                cleaned.append(stripped)
        return cleaned

    @model_validator(mode="after")
    def validate_salary_range(self):
        if (
            self.salary_min is not None
            and self.salary_max is not None
            and self.salary_min > self.salary_max
        ):
            raise ValueError("salary_min cannot be greater than salary_max")
        return self

    @property
    def is_empty(self) -> bool:
        return not (
            self.positions
            or self.locations
            or self.employment_types
            or self.salary_min is not None
            or self.salary_max is not None
        )


class MatchedJob(BaseModel):
    """A job recorded against an alert, with its notification state."""

    job_id: int
    matched_at: datetime
    notification_sent: bool = False
    sent_at: Optional[datetime] = None

    @field_validator("matched_at", "sent_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return _as_utc(v)


class JobAlert(BaseModel):
    """A user's saved job search with delivery preferences.

    ``matching_jobs`` is append-only and never holds the same job twice;
    ``total_matches`` always equals its length once matches are recorded.
    """

    id: Optional[int] = None
    user_id: int
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: bool = True
    criteria: AlertCriteria = Field(default_factory=AlertCriteria)
    notification_method: NotificationMethod = NotificationMethod.EMAIL
    frequency: AlertFrequency = AlertFrequency.DAILY
    digest_day: Optional[str] = None
    digest_time: str = DEFAULT_DIGEST_TIME
    matching_jobs: List[MatchedJob] = Field(default_factory=list)
    last_digest_sent: Optional[datetime] = None
    last_job_matched: Optional[datetime] = None
    total_matches: int = 0
    total_notifications_sent: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Alert name cannot be empty or whitespace-only")
        return stripped

    @field_validator("digest_time")
    @classmethod
    def validate_digest_time(cls, v: Optional[str]) -> str:
        """Normalize digest time to zero-padded HH:MM."""
        if v is None or not v.strip():
            return DEFAULT_DIGEST_TIME
        hour, minute = parse_clock_time(v)
        return f"{hour:02d}:{minute:02d}"

    @field_validator("digest_day")
    @classmethod
    def validate_digest_day(cls, v: Optional[str]) -> Optional[str]:
        """Accept weekday names case-insensitively, store them capitalized."""
        if v is None or not v.strip():
            return None
        normalized = v.strip().capitalize()
        if normalized not in WEEKDAY_NAMES:
            raise ValueError(f"digest_day must be one of {', '.join(WEEKDAY_NAMES)}, got: {v}")
        return normalized

    @field_validator("last_digest_sent", "last_job_matched", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return _as_utc(v)

    @property
    def matched_job_ids(self) -> set:
        return {entry.job_id for entry in self.matching_jobs}

    @property
    def unsent_matches(self) -> List[MatchedJob]:
        """Recorded matches still waiting for a digest."""
        return [entry for entry in self.matching_jobs if not entry.notification_sent]

    @property
    def is_instant(self) -> bool:
        return self.frequency == AlertFrequency.INSTANT

    def new_matches(self, jobs: Iterable[Job]) -> List[Job]:
        """Return the jobs not yet recorded against this alert, order preserved."""
        seen = self.matched_job_ids
        fresh = []
        for job in jobs:
            if job.id not in seen:
                seen.add(job.id)
                fresh.append(job)
        return fresh

    def record_matches(self, jobs: Iterable[Job], now: datetime, notified: bool) -> int:
        """Append one entry per new job and refresh the counters.

        Args:
            jobs: Jobs to record (ones already recorded are ignored)
            now: Timestamp for matched_at / sent_at
            notified: Whether the jobs were already emailed (instant alerts)

        Returns:
            Number of entries appended
        """
        now = ensure_utc(now)
        fresh = self.new_matches(jobs)
        for job in fresh:
            self.matching_jobs.append(
                MatchedJob(
                    job_id=job.id,
                    matched_at=now,
                    notification_sent=notified,
                    sent_at=now if notified else None,
                )
            )

        self.total_matches = len(self.matching_jobs)
        if fresh:
            self.last_job_matched = now
            if notified:
                self.total_notifications_sent += len(fresh)
        return len(fresh)

    def mark_sent(self, job_ids: Iterable[int], now: datetime, delivered: bool = True) -> int:
        """Flag unsent entries for the given jobs as delivered in a digest.

        With ``delivered=False`` the entries are closed without touching the
        digest counters (used for jobs that no longer exist).

        Returns:
            Number of entries flipped to sent
        """
        now = ensure_utc(now)
        wanted = set(job_ids)
        flipped = 0
        for entry in self.matching_jobs:
            if entry.job_id in wanted and not entry.notification_sent:
                entry.notification_sent = True
                entry.sent_at = now
                flipped += 1

        if flipped and delivered:
            self.last_digest_sent = now
            self.total_notifications_sent += flipped
        return flipped

    model_config = {"use_enum_values": True, "validate_default": True}
