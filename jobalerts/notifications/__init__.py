"""Email notifications for job alerts.

This module provides:
- MailClient: SMTP transport with a logging-only development mode
- NotificationService: renders and delivers instant, digest and test emails
- TemplateRenderer: Jinja2 rendering of the email templates
"""

from .mailer import DEV_MESSAGE_ID, MailClient
from .models import (
    InvalidRecipientError,
    NotificationError,
    NotificationResult,
    NotificationTemplateError,
    SMTPDeliveryError,
)
from .service import NotificationService
from .smtp_client import SMTPClient, build_sender_address, normalize_recipient
from .templates import EMAIL_KINDS, TemplateRenderer

__all__ = [
    "DEV_MESSAGE_ID",
    "EMAIL_KINDS",
    "InvalidRecipientError",
    "MailClient",
    "NotificationError",
    "NotificationResult",
    "NotificationService",
    "NotificationTemplateError",
    "SMTPClient",
    "SMTPDeliveryError",
    "TemplateRenderer",
    "build_sender_address",
    "normalize_recipient",
]
