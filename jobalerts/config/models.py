"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


def _interval_seconds(value: str, label: str) -> int:
    try:
        seconds = parse_duration(value)
        validate_duration_range(seconds, min_seconds=60, max_seconds=86400, label=label)
    except DurationParseError as e:
        raise ValueError(str(e)) from e
    return seconds


class AlertsConfig(BaseModel):
    """Settings for the alert processing, digest and job expiry passes."""

    instant_interval: str = Field(
        "15m", description="How often instant alerts are processed"
    )
    digest_interval: str = Field(
        "10m", description="How often daily/weekly alerts are matched and digests checked"
    )
    expiry_interval: str = Field("1h", description="How often expired jobs are closed")
    digest_window_minutes: int = Field(
        10, ge=1, le=60, description="Tolerance (+/- minutes) around an alert's digest time"
    )
    instant_max_jobs: int = Field(
        10, ge=1, le=100, description="Maximum jobs listed in one instant email"
    )
    test_sample_size: int = Field(
        3, ge=1, le=20, description="Jobs listed in a test notification"
    )
    timezone: Optional[str] = Field(
        None, description="IANA timezone for digest times (default: host local time)"
    )

    # Computed fields
    instant_interval_seconds: Optional[int] = None
    digest_interval_seconds: Optional[int] = None
    expiry_interval_seconds: Optional[int] = None

    @field_validator("instant_interval", "digest_interval", "expiry_interval")
    @classmethod
    def validate_interval(cls, v: str, info) -> str:
        """Reject intervals that cannot be parsed or fall outside 1m..24h."""
        _interval_seconds(v, info.field_name)
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        """Ensure the timezone name is known to the zoneinfo database."""
        if v is None or not v.strip():
            return None
        try:
            ZoneInfo(v.strip())
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: '{v}'") from e
        return v.strip()

    @model_validator(mode="after")
    def compute_interval_seconds(self):
        """Store parsed interval values for the scheduler."""
        self.instant_interval_seconds = _interval_seconds(self.instant_interval, "instant_interval")
        self.digest_interval_seconds = _interval_seconds(self.digest_interval, "digest_interval")
        self.expiry_interval_seconds = _interval_seconds(self.expiry_interval, "expiry_interval")
        return self


class EmailConfig(BaseModel):
    """Email delivery settings."""

    use_tls: bool = Field(True, description="Use TLS/STARTTLS for secure connection")
    max_retries: int = Field(
        2, ge=0, le=10, description="Number of retry attempts for failed email sends"
    )
    retry_backoff_multiplier: float = Field(
        2.0, ge=1.0, le=5.0, description="Exponential backoff multiplier for retries"
    )
    retry_initial_delay: float = Field(
        5, ge=0, le=60, description="Initial retry delay in seconds"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the job alert service."""

    alerts: AlertsConfig = Field(default_factory=AlertsConfig, description="Alert pass settings")
    email: EmailConfig = Field(default_factory=EmailConfig, description="Email settings")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
