"""Input and output models for alert management operations."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from jobalerts.domain.models import (
    DEFAULT_DIGEST_TIME,
    AlertFrequency,
    EmploymentType,
    Job,
    NotificationMethod,
)
from jobalerts.notifications.payloads import format_amount

POSITIONS = ("Pharmacist", "Dispensary Assistant", "Pharmacy Manager", "Other")
EMPLOYMENT_TYPES = tuple(employment_type.value for employment_type in EmploymentType)


def _check_members(values: Optional[List[str]], allowed, label: str) -> Optional[List[str]]:
    if values is None:
        return None
    unknown = [value for value in values if value not in allowed]
    if unknown:
        raise ValueError(f"Unknown {label}: {', '.join(unknown)}. Allowed: {', '.join(allowed)}")
    return values


class AlertCreate(BaseModel):
    """Fields accepted when creating an alert."""

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    positions: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)
    salary_min: Optional[float] = Field(None, ge=0)
    salary_max: Optional[float] = Field(None, ge=0)
    employment_types: List[str] = Field(default_factory=list)
    notification_method: NotificationMethod = NotificationMethod.EMAIL
    frequency: AlertFrequency = AlertFrequency.DAILY
    digest_day: Optional[str] = None
    digest_time: str = DEFAULT_DIGEST_TIME
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Alert name is required")
        return stripped

    @field_validator("positions")
    @classmethod
    def validate_positions(cls, v: List[str]) -> List[str]:
        return _check_members(v, POSITIONS, "positions")

    @field_validator("employment_types")
    @classmethod
    def validate_employment_types(cls, v: List[str]) -> List[str]:
        return _check_members(v, EMPLOYMENT_TYPES, "employment types")

    @model_validator(mode="after")
    def validate_weekly_day(self):
        if self.frequency == AlertFrequency.WEEKLY and not self.digest_day:
            raise ValueError("Weekly alerts require a digest_day")
        return self

    model_config = {"use_enum_values": True}


class AlertUpdate(BaseModel):
    """Partial update. Only fields explicitly provided are changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    positions: Optional[List[str]] = None
    locations: Optional[List[str]] = None
    salary_min: Optional[float] = Field(None, ge=0)
    salary_max: Optional[float] = Field(None, ge=0)
    employment_types: Optional[List[str]] = None
    notification_method: Optional[NotificationMethod] = None
    frequency: Optional[AlertFrequency] = None
    digest_day: Optional[str] = None
    digest_time: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("positions")
    @classmethod
    def validate_positions(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _check_members(v, POSITIONS, "positions")

    @field_validator("employment_types")
    @classmethod
    def validate_employment_types(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _check_members(v, EMPLOYMENT_TYPES, "employment types")

    model_config = {"use_enum_values": True}


class JobSummary(BaseModel):
    """Compact job listing used in match previews."""

    id: int
    title: str
    position: str
    location: str
    salary: str = "Not specified"

    @classmethod
    def from_job(cls, job: Job) -> "JobSummary":
        salary = "Not specified"
        if job.salary_min and job.salary_max:
            salary = f"{format_amount(job.salary_min)}-{format_amount(job.salary_max)}"
        return cls(
            id=job.id,
            title=job.title,
            position=job.position,
            location=job.location,
            salary=salary,
        )


class MatchPreview(BaseModel):
    """Current matches of an alert compared to what it has already recorded."""

    alert_id: int
    total_matches: int
    new_matches: int
    matching_jobs: List[JobSummary] = Field(default_factory=list)


class RecentMatches(BaseModel):
    """The most recent jobs an alert currently matches."""

    alert_id: int
    alert_name: str
    total_matches: int
    matched_at: datetime
    recent_matches: List[JobSummary] = Field(default_factory=list)


class PreviewEmailReport(BaseModel):
    """Outcome of a test email sent for an alert."""

    alert_id: int
    message_id: Optional[str]
    jobs_preview: int
