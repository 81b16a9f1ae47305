"""Data models and exceptions for the notification service."""

from dataclasses import dataclass
from typing import Optional


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when template rendering fails due to configuration or missing variables."""

    pass


class SMTPDeliveryError(NotificationError):
    """Raised when the mail transport fails to deliver a message."""

    pass


class InvalidRecipientError(NotificationError):
    """Raised when the recipient address is missing or malformed."""

    pass


@dataclass
class NotificationResult:
    """Outcome of one attempt to email an alert owner.

    Attributes:
        kind: Email kind (instant_alert, alert_digest, alert_test)
        alert_id: Alert the email was about
        recipient: Address the email was sent to
        job_count: Number of jobs the email covered
        attempts: Number of send attempts made
        status: Outcome status (sent, failed)
        message_id: Transport message id on success ("dev-local" when SMTP is off)
        error: Error message if delivery failed
    """

    kind: str
    alert_id: Optional[int]
    recipient: Optional[str]
    job_count: int
    attempts: int
    status: str  # "sent", "failed"
    message_id: Optional[str] = None
    error: Optional[str] = None

    def is_success(self) -> bool:
        return self.status == "sent"
