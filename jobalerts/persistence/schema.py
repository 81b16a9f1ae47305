"""Database schema definition and ORM models.

Users and jobs belong to the wider job board; the alert engine stores its
own alerts and their recorded matches alongside them. Alert matches are
kept in their own table so the (alert, job) pair can be made unique.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    inspect,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship

from jobalerts.domain.models import AlertCriteria, Job, JobAlert, MatchedJob, User

logger = logging.getLogger(__name__)

Base = declarative_base()


class UserModel(Base):
    """ORM model for users table (read-only for the alert engine)."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(255), nullable=True)
    user_type = Column(String(50), nullable=False, default="jobseeker")

    def to_domain(self) -> User:
        return User(
            id=self.id,
            first_name=self.first_name or "",
            last_name=self.last_name or "",
            email=self.email,
            user_type=self.user_type or "jobseeker",
        )

    @classmethod
    def from_domain(cls, user: User) -> "UserModel":
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            user_type=user.user_type,
        )


class JobModel(Base):
    """ORM model for jobs table.

    The alert engine reads jobs; only the expiry maintenance pass writes to
    ``status`` and ``featured``.
    """

    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    position = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    status = Column(String(20), nullable=False, default="active")

    location_city = Column(String(100), nullable=True)
    location_province = Column(String(100), nullable=True)

    salary_min = Column(Float, nullable=True)
    salary_max = Column(Float, nullable=True)
    salary_currency = Column(String(10), nullable=False, default="ZWL")
    employment_type = Column(String(50), nullable=True)

    featured = Column(Boolean, nullable=False, default=False)

    # Timestamps (stored as ISO 8601 strings)
    featured_until = Column(String(50), nullable=True)
    application_deadline = Column(String(50), nullable=True)
    expires_at = Column(String(50), nullable=True)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (
        Index("idx_jobs_status_created", "status", "created_at"),
        Index("idx_jobs_position", "position"),
    )

    def to_domain(self) -> Job:
        """Convert ORM model to domain model."""
        return Job(
            id=self.id,
            title=self.title,
            position=self.position,
            description=self.description or "",
            status=self.status,
            location_city=self.location_city,
            location_province=self.location_province,
            salary_min=self.salary_min,
            salary_max=self.salary_max,
            salary_currency=self.salary_currency or "ZWL",
            employment_type=self.employment_type,
            featured=bool(self.featured),
            featured_until=_parse_datetime(self.featured_until),
            application_deadline=_parse_datetime(self.application_deadline),
            expires_at=_parse_datetime(self.expires_at),
            created_at=_parse_datetime(self.created_at),
        )

    @classmethod
    def from_domain(cls, job: Job) -> "JobModel":
        """Create ORM model from domain model."""
        return cls(
            id=job.id,
            title=job.title,
            position=job.position,
            description=job.description,
            status=job.status,
            location_city=job.location_city,
            location_province=job.location_province,
            salary_min=job.salary_min,
            salary_max=job.salary_max,
            salary_currency=job.salary_currency,
            employment_type=job.employment_type,
            featured=job.featured,
            featured_until=_format_datetime(job.featured_until),
            application_deadline=_format_datetime(job.application_deadline),
            expires_at=_format_datetime(job.expires_at),
            created_at=_format_datetime(job.created_at),
        )


class JobAlertModel(Base):
    """ORM model for job_alerts table."""

    __tablename__ = "job_alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Owner lives in the wider user store; referenced by id only
    user_id = Column(Integer, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Criteria
    positions = Column(JSON, nullable=False, default=list)
    locations = Column(JSON, nullable=False, default=list)
    employment_types = Column(JSON, nullable=False, default=list)
    salary_min = Column(Float, nullable=True)
    salary_max = Column(Float, nullable=True)

    # Delivery
    notification_method = Column(String(10), nullable=False, default="email")
    frequency = Column(String(10), nullable=False, default="daily")
    digest_day = Column(String(10), nullable=True)
    digest_time = Column(String(5), nullable=False, default="09:00")

    # Bookkeeping (timestamps stored as ISO 8601 strings)
    last_digest_sent = Column(String(50), nullable=True)
    last_job_matched = Column(String(50), nullable=True)
    total_matches = Column(Integer, nullable=False, default=0)
    total_notifications_sent = Column(Integer, nullable=False, default=0)
    created_at = Column(String(50), nullable=False)
    updated_at = Column(String(50), nullable=False)

    matches = relationship(
        "AlertMatchModel",
        back_populates="alert",
        order_by="AlertMatchModel.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_job_alerts_user_name"),
        Index("idx_job_alerts_active_frequency", "is_active", "frequency"),
        Index("idx_job_alerts_user", "user_id"),
    )

    def to_domain(self) -> JobAlert:
        """Convert ORM model (and its recorded matches) to domain model."""
        return JobAlert(
            id=self.id,
            user_id=self.user_id,
            name=self.name,
            description=self.description,
            is_active=bool(self.is_active),
            criteria=AlertCriteria(
                positions=list(self.positions or []),
                locations=list(self.locations or []),
                employment_types=list(self.employment_types or []),
                salary_min=self.salary_min,
                salary_max=self.salary_max,
            ),
            notification_method=self.notification_method,
            frequency=self.frequency,
            digest_day=self.digest_day,
            digest_time=self.digest_time,
            matching_jobs=[match.to_domain() for match in self.matches],
            last_digest_sent=_parse_datetime(self.last_digest_sent),
            last_job_matched=_parse_datetime(self.last_job_matched),
            total_matches=self.total_matches,
            total_notifications_sent=self.total_notifications_sent,
            created_at=_parse_datetime(self.created_at),
            updated_at=_parse_datetime(self.updated_at),
        )

    @classmethod
    def from_domain(cls, alert: JobAlert) -> "JobAlertModel":
        """Create ORM model from domain model, recorded matches included."""
        model = cls(id=alert.id, user_id=alert.user_id, created_at=_format_datetime(alert.created_at))
        model.apply(alert)
        return model

    def apply(self, alert: JobAlert) -> None:
        """Copy mutable alert state onto this row.

        Recorded matches are append-only: rows for jobs already stored are
        updated in place, new ones are appended after them.
        """
        self.name = alert.name
        self.description = alert.description
        self.is_active = alert.is_active
        self.positions = list(alert.criteria.positions)
        self.locations = list(alert.criteria.locations)
        self.employment_types = list(alert.criteria.employment_types)
        self.salary_min = alert.criteria.salary_min
        self.salary_max = alert.criteria.salary_max
        self.notification_method = alert.notification_method
        self.frequency = alert.frequency
        self.digest_day = alert.digest_day
        self.digest_time = alert.digest_time
        self.last_digest_sent = _format_datetime(alert.last_digest_sent)
        self.last_job_matched = _format_datetime(alert.last_job_matched)
        self.total_matches = alert.total_matches
        self.total_notifications_sent = alert.total_notifications_sent
        self.updated_at = _format_datetime(alert.updated_at)

        existing = {match.job_id: match for match in self.matches}
        next_position = len(self.matches)
        for entry in alert.matching_jobs:
            row = existing.get(entry.job_id)
            if row is None:
                self.matches.append(AlertMatchModel.from_domain(entry, next_position))
                next_position += 1
            else:
                row.notification_sent = entry.notification_sent
                row.sent_at = _format_datetime(entry.sent_at)


class AlertMatchModel(Base):
    """ORM model for alert_matches table (one row per job matched by an alert)."""

    __tablename__ = "alert_matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    alert_id = Column(
        Integer, ForeignKey("job_alerts.id", ondelete="CASCADE"), nullable=False
    )
    # Jobs may be purged by the job board; referenced by id only
    job_id = Column(Integer, nullable=False)
    position = Column(Integer, nullable=False)
    matched_at = Column(String(50), nullable=False)
    notification_sent = Column(Boolean, nullable=False, default=False)
    sent_at = Column(String(50), nullable=True)

    alert = relationship("JobAlertModel", back_populates="matches")

    __table_args__ = (
        UniqueConstraint("alert_id", "job_id", name="uq_alert_matches_alert_job"),
        Index("idx_alert_matches_unsent", "alert_id", "notification_sent"),
    )

    def to_domain(self) -> MatchedJob:
        return MatchedJob(
            job_id=self.job_id,
            matched_at=_parse_datetime(self.matched_at),
            notification_sent=bool(self.notification_sent),
            sent_at=_parse_datetime(self.sent_at),
        )

    @classmethod
    def from_domain(cls, entry: MatchedJob, position: int) -> "AlertMatchModel":
        return cls(
            job_id=entry.job_id,
            position=position,
            matched_at=_format_datetime(entry.matched_at),
            notification_sent=entry.notification_sent,
            sent_at=_format_datetime(entry.sent_at),
        )


def _format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Format datetime as ISO 8601 string for database storage.

    Naive datetimes are treated as UTC. The fixed-width format keeps string
    comparison in SQL consistent with chronological order.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    return dt.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _parse_datetime(dt_str: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO 8601 string back to a UTC datetime."""
    if dt_str is None or dt_str == "":
        return None

    dt_str = dt_str.rstrip("Z")

    try:
        dt = datetime.strptime(dt_str, "%Y-%m-%dT%H:%M:%S.%f")
    except ValueError:
        dt = datetime.strptime(dt_str, "%Y-%m-%dT%H:%M:%S")

    return dt.replace(tzinfo=timezone.utc)


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent)."""
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)

        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")

    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
