"""Environment variable loading and validation."""

import os
from typing import Optional

from email_validator import EmailNotValidError, validate_email

from .exceptions import ConfigurationError

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class EnvironmentConfig:
    """Environment variable configuration holder.

    SMTP settings are optional: without SMTP_HOST the mail client runs in
    dev mode and only logs outgoing messages.
    """

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_user: Optional[str] = None,
        smtp_pass: Optional[str] = None,
        smtp_sender_name: Optional[str] = None,
        smtp_sender_email: Optional[str] = None,
        frontend_url: Optional[str] = None,
        log_level: Optional[str] = None,
        database_url: Optional[str] = None,
        environment: Optional[str] = None,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        self.smtp_sender_name = smtp_sender_name or "ZimPharmHub"
        self.smtp_sender_email = smtp_sender_email
        self.frontend_url = (frontend_url or "http://localhost:3000").rstrip("/")
        self.log_level = log_level
        self.database_url = database_url or "sqlite:///./data/job_alerts.db"
        self.environment = environment or "local"

    @property
    def smtp_configured(self) -> bool:
        """True when outgoing mail should go through a real SMTP server."""
        return bool(self.smtp_host)


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Optional environment variables:
    - SMTP_HOST: SMTP server hostname (unset = dev mode, emails are only logged)
    - SMTP_PORT: SMTP server port (1-65535, default 587)
    - SMTP_USER / SMTP_PASS: SMTP credentials (both or neither)
    - SMTP_SENDER_NAME: Display name for the From header (default "ZimPharmHub")
    - SMTP_SENDER_EMAIL: Address for the From header
    - FRONTEND_URL: Base URL used for job links (default http://localhost:3000)
    - LOG_LEVEL: Override log level
    - DATABASE_URL: SQLAlchemy URL (default sqlite:///./data/job_alerts.db)
    - ENVIRONMENT: Environment label attached to every log record

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If any variable is invalid
    """
    errors = []

    smtp_host = os.getenv("SMTP_HOST") or None
    smtp_port_str = os.getenv("SMTP_PORT")
    smtp_user = os.getenv("SMTP_USER") or None
    smtp_pass = os.getenv("SMTP_PASS") or None
    smtp_sender_email = os.getenv("SMTP_SENDER_EMAIL") or None
    log_level = os.getenv("LOG_LEVEL") or None

    smtp_port = 587
    if smtp_port_str:
        try:
            smtp_port = int(smtp_port_str)
            if smtp_port < 1 or smtp_port > 65535:
                errors.append(f"Invalid SMTP_PORT: {smtp_port}. Must be between 1 and 65535.")
        except ValueError:
            errors.append(f"Invalid SMTP_PORT: '{smtp_port_str}'. Must be a valid integer.")

    if smtp_user and not smtp_pass:
        errors.append("SMTP_USER is set but SMTP_PASS is not. Both must be set for authentication.")
    elif smtp_pass and not smtp_user:
        errors.append("SMTP_PASS is set but SMTP_USER is not. Both must be set for authentication.")

    if smtp_sender_email:
        try:
            smtp_sender_email = validate_email(
                smtp_sender_email, check_deliverability=False
            ).normalized
        except EmailNotValidError as e:
            errors.append(f"Invalid SMTP_SENDER_EMAIL '{smtp_sender_email}': {e}")

    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your settings",
                "Leave SMTP_HOST unset to run without sending real email",
                "Verify SMTP_PORT is a number between 1 and 65535",
            ],
        )

    return EnvironmentConfig(
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        smtp_sender_name=os.getenv("SMTP_SENDER_NAME") or None,
        smtp_sender_email=smtp_sender_email,
        frontend_url=os.getenv("FRONTEND_URL") or None,
        log_level=log_level.upper() if log_level else None,
        database_url=os.getenv("DATABASE_URL") or None,
        environment=os.getenv("ENVIRONMENT") or None,
    )
