"""Alert management operations."""

from .exceptions import (
    AlertAccessDeniedError,
    AlertNotFoundError,
    AlertServiceError,
    DuplicateAlertNameError,
    InvalidAlertError,
    NoMatchingJobsError,
    NotificationDeliveryError,
    UserNotFoundError,
)
from .schemas import (
    AlertCreate,
    AlertUpdate,
    JobSummary,
    MatchPreview,
    PreviewEmailReport,
    RecentMatches,
)
from .service import AlertService

__all__ = [
    "AlertService",
    "AlertCreate",
    "AlertUpdate",
    "JobSummary",
    "MatchPreview",
    "RecentMatches",
    "PreviewEmailReport",
    "AlertServiceError",
    "AlertNotFoundError",
    "AlertAccessDeniedError",
    "DuplicateAlertNameError",
    "InvalidAlertError",
    "UserNotFoundError",
    "NoMatchingJobsError",
    "NotificationDeliveryError",
]
