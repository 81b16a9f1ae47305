"""Notification service for job alert emails.

Renders the instant, digest and test emails and hands them to the mail
client, retrying transport failures with exponential backoff. The alert
passes only ever see a boolean: transport errors never escape.
"""

import logging
import time
from typing import Dict, Optional, Sequence

from jobalerts.config.models import EmailConfig
from jobalerts.domain.models import Job, JobAlert, User
from jobalerts.logging import get_logger
from jobalerts.logging.context import log_context

from .mailer import MailClient
from .models import (
    InvalidRecipientError,
    NotificationResult,
    NotificationTemplateError,
    SMTPDeliveryError,
)
from .payloads import build_digest_context, build_instant_context, build_test_context
from .templates import TemplateRenderer

logger = get_logger(__name__, component="notification")

MAX_RETRY_DELAY_SECONDS = 60.0


class NotificationService:
    """Composes and delivers alert emails.

    Coordinates:
    1. Build template context for the email kind
    2. Render subject, HTML and text bodies
    3. Deliver through the MailClient with retry/backoff
    4. Report the outcome as a NotificationResult
    """

    def __init__(
        self,
        mail_client: MailClient,
        frontend_url: str = "http://localhost:3000",
        email_config: Optional[EmailConfig] = None,
        instant_max_jobs: int = 10,
        template_renderer: Optional[TemplateRenderer] = None,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize notification service.

        Args:
            mail_client: Transport used for every email
            frontend_url: Base URL for job links
            email_config: Retry settings (defaults if None)
            instant_max_jobs: Jobs listed in one instant email
            template_renderer: Template renderer instance (creates default if None)
            logger_instance: Logger instance (uses module logger if None)
        """
        self.mail_client = mail_client
        self.frontend_url = frontend_url.rstrip("/")
        self.email_config = email_config or EmailConfig()
        self.instant_max_jobs = instant_max_jobs
        self.template_renderer = template_renderer or TemplateRenderer()
        self.logger = logger_instance or logger

    def send_instant_notification(self, user: User, alert: JobAlert, jobs: Sequence[Job]) -> bool:
        """Email the owner about new matches right away.

        Returns:
            True if the email was handed to the transport, False otherwise
        """
        context = build_instant_context(
            user, alert, list(jobs), self.frontend_url, max_jobs=self.instant_max_jobs
        )
        return self.deliver("instant_alert", user, alert, context, len(jobs)).is_success()

    def send_digest_notification(self, user: User, alert: JobAlert, jobs: Sequence[Job]) -> bool:
        """Email the owner the accumulated matches of a daily/weekly alert.

        Returns:
            True if the email was handed to the transport, False otherwise
        """
        context = build_digest_context(user, alert, list(jobs), self.frontend_url)
        return self.deliver("alert_digest", user, alert, context, len(jobs)).is_success()

    def send_test_notification(
        self, user: User, alert: JobAlert, jobs: Sequence[Job]
    ) -> NotificationResult:
        """Send a ``[TEST]`` email with sample matches of an alert."""
        context = build_test_context(user, alert, list(jobs), self.frontend_url)
        return self.deliver("alert_test", user, alert, context, len(jobs))

    def deliver(
        self, kind: str, user: User, alert: JobAlert, context: Dict, job_count: int
    ) -> NotificationResult:
        """Render and send one email, converting every failure into a result.

        Args:
            kind: Email kind (template prefix)
            user: Recipient
            alert: Alert the email is about
            context: Template context
            job_count: Number of jobs the email covers

        Returns:
            NotificationResult with status "sent" or "failed"
        """
        with log_context(alert_id=alert.id, email_kind=kind):
            result = NotificationResult(
                kind=kind,
                alert_id=alert.id,
                recipient=user.email,
                job_count=job_count,
                attempts=0,
                status="failed",
            )

            try:
                rendered = self.template_renderer.render(kind, context)
            except NotificationTemplateError as e:
                result.error = str(e)
                self.logger.error(
                    f"Template rendering failed for alert {alert.id}: {e}",
                    extra={"event": "notification.render.failure"},
                )
                return result

            max_attempts = self.email_config.max_retries + 1
            for attempt in range(1, max_attempts + 1):
                if attempt > 1:
                    delay = self._retry_delay(attempt)
                    self.logger.warning(
                        f"Retrying {kind} email for alert {alert.id} "
                        f"(attempt {attempt}/{max_attempts}) after {delay:.1f}s delay",
                        extra={"event": "notification.send.attempt", "attempt": attempt},
                    )
                    time.sleep(delay)

                result.attempts = attempt
                try:
                    result.message_id = self.mail_client.send_email(
                        user.email,
                        rendered["subject"],
                        rendered["text_body"],
                        rendered["html_body"],
                    )
                except InvalidRecipientError as e:
                    # Retrying cannot fix a bad address
                    result.error = str(e)
                    self.logger.error(
                        f"Cannot email alert {alert.id} owner: {e}",
                        extra={"event": "notification.recipient.invalid"},
                    )
                    return result
                except SMTPDeliveryError as e:
                    result.error = str(e)
                    retry_remaining = attempt < max_attempts
                    self.logger.log(
                        logging.WARNING if retry_remaining else logging.ERROR,
                        f"Email delivery failed for alert {alert.id} "
                        f"(attempt {attempt}/{max_attempts}): {e}",
                        extra={
                            "event": "notification.send.failure",
                            "attempt": attempt,
                            "error_type": type(e).__name__,
                            "retry_remaining": retry_remaining,
                        },
                    )
                    continue
                except Exception as e:
                    result.error = f"Unexpected error during delivery: {e}"
                    self.logger.error(
                        f"Unexpected error emailing alert {alert.id}: {e}",
                        exc_info=True,
                        extra={"event": "notification.send.failure", "attempt": attempt},
                    )
                    return result

                result.status = "sent"
                result.error = None
                self.logger.info(
                    f"Sent {kind} email for alert '{alert.name}' to {user.email} "
                    f"({job_count} jobs, attempts: {attempt})",
                    extra={
                        "event": "notification.send.success",
                        "attempt": attempt,
                        "job_count": job_count,
                        "message_id": result.message_id,
                    },
                )
                return result

            return result

    def _retry_delay(self, attempt: int) -> float:
        delay = self.email_config.retry_initial_delay * (
            self.email_config.retry_backoff_multiplier ** (attempt - 2)
        )
        return min(delay, MAX_RETRY_DELAY_SECONDS)
