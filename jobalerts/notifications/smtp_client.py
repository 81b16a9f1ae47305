"""SMTP client wrapper for email delivery.

Thin wrapper around smtplib with support for STARTTLS, implicit TLS
(port 465), authentication, and connection cleanup.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Callable, Optional

from email_validator import EmailNotValidError, validate_email

from jobalerts.config.environment import EnvironmentConfig

from .models import InvalidRecipientError, SMTPDeliveryError

logger = logging.getLogger(__name__)


class SMTPClient:
    """Sends EmailMessage objects over SMTP.

    The smtplib factories can be injected so tests never open a socket.
    """

    def __init__(
        self,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
        timeout: float = 30.0,
    ):
        """Initialize SMTP client with optional factory injection.

        Args:
            smtp_factory: Factory for plain SMTP connections (for mocking)
            smtp_ssl_factory: Factory for SMTP_SSL connections (for mocking)
            timeout: Socket timeout in seconds for each connection
        """
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL
        self.timeout = timeout

    def send(
        self,
        message: EmailMessage,
        env_config: EnvironmentConfig,
        use_tls: bool = True,
    ) -> None:
        """Send an email message via SMTP.

        Args:
            message: Fully constructed EmailMessage to send
            env_config: Environment configuration with SMTP settings
            use_tls: Whether to upgrade plain connections with STARTTLS

        Raises:
            SMTPDeliveryError: If message delivery fails
        """
        smtp = None
        host, port = env_config.smtp_host, env_config.smtp_port
        try:
            if port == 465:
                logger.debug(f"Connecting to {host}:{port} with implicit TLS")
                smtp = self.smtp_ssl_factory(
                    host, port, context=ssl.create_default_context(), timeout=self.timeout
                )
            else:
                logger.debug(f"Connecting to {host}:{port}")
                smtp = self.smtp_factory(host, port, timeout=self.timeout)
                if use_tls:
                    smtp.starttls(context=ssl.create_default_context())

            if env_config.smtp_user and env_config.smtp_pass:
                smtp.login(env_config.smtp_user, env_config.smtp_pass)

            smtp.send_message(message)
            logger.debug(f"Message sent to {message['To']}")

        except smtplib.SMTPException as e:
            raise SMTPDeliveryError(f"SMTP error during message delivery: {e}") from e
        except OSError as e:
            raise SMTPDeliveryError(f"Network error during SMTP connection: {e}") from e
        finally:
            if smtp is not None:
                try:
                    smtp.quit()
                except (smtplib.SMTPException, OSError) as e:
                    logger.warning(f"Error closing SMTP connection: {e}")


def normalize_recipient(address: Optional[str]) -> str:
    """Validate a single recipient address and return its normalized form.

    Raises:
        InvalidRecipientError: If the address is empty or malformed
    """
    if not address or not address.strip():
        raise InvalidRecipientError("Recipient email address is missing")

    try:
        return validate_email(address.strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise InvalidRecipientError(f"Invalid recipient email address '{address}': {e}") from e


def build_sender_address(env_config: EnvironmentConfig) -> str:
    """Build the 'From' header for outgoing emails.

    Prefers SMTP_SENDER_EMAIL, then SMTP_USER, then a no-reply address at
    the frontend's host.

    Example:
        "ZimPharmHub <alerts@zimpharmhub.co.zw>"
    """
    sender_email = env_config.smtp_sender_email or env_config.smtp_user
    if not sender_email or "@" not in sender_email:
        host = env_config.frontend_url.split("://", 1)[-1].split("/", 1)[0].split(":", 1)[0]
        sender_email = f"no-reply@{host or 'zimpharmhub.local'}"

    return f"{env_config.smtp_sender_name} <{sender_email}>"
