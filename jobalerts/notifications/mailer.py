"""Mail transport used by the notification service.

``MailClient`` is built once at startup from the environment and passed to
whatever needs to send mail. When no SMTP host is configured it runs in
development mode: the would-be send is logged and ``"dev-local"`` returned.
"""

import logging
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Optional

from jobalerts.config.environment import EnvironmentConfig
from jobalerts.logging import get_logger

from .smtp_client import SMTPClient, build_sender_address, normalize_recipient

DEV_MESSAGE_ID = "dev-local"

logger = get_logger(__name__, component="mailer")


class MailClient:
    """Sends a single email and returns its message id."""

    def __init__(
        self,
        env_config: EnvironmentConfig,
        smtp_client: Optional[SMTPClient] = None,
        use_tls: bool = True,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.env_config = env_config
        self.smtp_client = smtp_client or SMTPClient()
        self.use_tls = use_tls
        self.logger = logger_instance or logger

    @property
    def is_configured(self) -> bool:
        return self.env_config.smtp_configured

    def send_email(self, to: str, subject: str, text: str, html: Optional[str] = None) -> str:
        """Send one email.

        Args:
            to: Recipient address
            subject: Subject line
            text: Plain text body
            html: Optional HTML alternative

        Returns:
            The message id, or "dev-local" when SMTP is not configured

        Raises:
            InvalidRecipientError: If the recipient address is invalid
            SMTPDeliveryError: If the transport fails
        """
        recipient = normalize_recipient(to)

        if not self.is_configured:
            self.logger.info(
                f"[DEV] Would send email to {recipient}: {subject}",
                extra={"event": "mail.dev_mode", "recipient": recipient, "subject": subject},
            )
            return DEV_MESSAGE_ID

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = build_sender_address(self.env_config)
        message["To"] = recipient
        message["Date"] = formatdate(localtime=False)
        message_id = make_msgid(domain=self._message_id_domain())
        message["Message-ID"] = message_id
        message.set_content(text)
        if html:
            message.add_alternative(html, subtype="html")

        self.smtp_client.send(message, self.env_config, self.use_tls)

        self.logger.info(
            f"Email sent to {recipient}: {message_id}",
            extra={"event": "mail.sent", "recipient": recipient, "message_id": message_id},
        )
        return message_id

    def _message_id_domain(self) -> str:
        sender = self.env_config.smtp_sender_email or self.env_config.smtp_user or ""
        if "@" in sender:
            return sender.rsplit("@", 1)[1]
        return self.env_config.smtp_host or "localhost"
