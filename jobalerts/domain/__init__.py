"""Domain models for the job alert engine."""

from .models import (
    AlertCriteria,
    AlertFrequency,
    EmploymentType,
    Job,
    JobAlert,
    JobStatus,
    MatchedJob,
    NotificationMethod,
    User,
)

__all__ = [
    "AlertCriteria",
    "AlertFrequency",
    "EmploymentType",
    "Job",
    "JobAlert",
    "JobStatus",
    "MatchedJob",
    "NotificationMethod",
    "User",
]
