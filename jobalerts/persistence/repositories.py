"""Data access layer (repositories) for persistence operations.

Repositories wrap a session, return domain models rather than ORM rows, and
convert SQLAlchemy errors into persistence exceptions.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from jobalerts.domain.models import Job, JobAlert, User

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import JobAlertModel, JobModel, UserModel, _format_datetime

logger = logging.getLogger(__name__)


class UserRepository:
    """Read access to job board users."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: int) -> Optional[User]:
        """Retrieve a user by id, or None if it does not exist.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            user_model = self.session.get(UserModel, user_id)
            return user_model.to_domain() if user_model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve user: {e}") from e

    def add(self, user: User) -> User:
        """Insert a user record (used when seeding and in tests).

        Raises:
            DataIntegrityError: If a user with the same id exists
            PersistenceError: If database error occurs
        """
        try:
            user_model = UserModel.from_domain(user)
            self.session.add(user_model)
            self.session.flush()
            return user_model.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error adding user {user.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to add user due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding user {user.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add user: {e}") from e


class JobRepository:
    """Repository for job postings."""

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def get(self, job_id: int) -> Optional[Job]:
        """Retrieve job by primary key.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            job_model = self.session.get(JobModel, job_id)
            return job_model.to_domain() if job_model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving job {job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve job: {e}") from e

    def get_active(self) -> List[Job]:
        """Query all active jobs, newest first.

        Returns:
            List of Job domain models ordered by created_at DESC

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(JobModel)
                .where(JobModel.status == "active")
                .order_by(JobModel.created_at.desc(), JobModel.id.desc())
            )
            job_models = self.session.execute(stmt).scalars().all()
            return [job_model.to_domain() for job_model in job_models]

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving active jobs: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve active jobs: {e}") from e

    def get_by_ids(self, job_ids: Iterable[int]) -> List[Job]:
        """Fetch jobs for a set of ids, in the order the ids were given.

        Ids with no stored job are silently absent from the result.

        Raises:
            PersistenceError: If database error occurs
        """
        ids = list(job_ids)
        if not ids:
            return []

        try:
            stmt = select(JobModel).where(JobModel.id.in_(ids))
            by_id = {model.id: model.to_domain() for model in self.session.execute(stmt).scalars()}
            return [by_id[job_id] for job_id in ids if job_id in by_id]

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving jobs by id: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve jobs: {e}") from e

    def upsert(self, job: Job) -> Job:
        """Insert new job or replace an existing one with the same id.

        Raises:
            DataIntegrityError: On constraint violation
            PersistenceError: If database error occurs
        """
        try:
            job_model = self.session.merge(JobModel.from_domain(job))
            self.session.flush()
            return job_model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error upserting job {job.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to upsert job due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting job {job.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert job: {e}") from e

    def close_past(self, column: str, cutoff: datetime) -> int:
        """Close active jobs whose ``column`` timestamp is before cutoff.

        Args:
            column: "application_deadline" or "expires_at"
            cutoff: Jobs with the timestamp strictly before this are closed

        Returns:
            Count of jobs closed

        Raises:
            PersistenceError: If database error occurs
        """
        if column not in ("application_deadline", "expires_at"):
            raise ValueError(f"Cannot close jobs by column '{column}'")

        try:
            field = getattr(JobModel, column)
            stmt = (
                update(JobModel)
                .where(
                    JobModel.status == "active",
                    field.is_not(None),
                    field < _format_datetime(cutoff),
                )
                .values(status="closed")
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount

        except SQLAlchemyError as e:
            logger.error(f"Error closing jobs past {column}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to close expired jobs: {e}") from e

    def unfeature_expired(self, cutoff: datetime) -> int:
        """Clear the featured flag of jobs whose featured period ended before cutoff.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                update(JobModel)
                .where(
                    JobModel.featured.is_(True),
                    JobModel.featured_until.is_not(None),
                    JobModel.featured_until < _format_datetime(cutoff),
                )
                .values(featured=False)
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount

        except SQLAlchemyError as e:
            logger.error(f"Error unfeaturing jobs: {e}", exc_info=True)
            raise PersistenceError(f"Failed to unfeature jobs: {e}") from e


class AlertRepository:
    """Repository for job alerts and their recorded matches."""

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def get(self, alert_id: int) -> Optional[JobAlert]:
        """Retrieve an alert (with its recorded matches) by id.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            alert_model = self.session.get(JobAlertModel, alert_id)
            return alert_model.to_domain() if alert_model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving alert {alert_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve alert: {e}") from e

    def list_ids(
        self, frequencies: Optional[Iterable[str]] = None, active_only: bool = True
    ) -> List[int]:
        """List alert ids, optionally restricted to some frequencies.

        Passes load each alert in its own session, so only ids are returned.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = select(JobAlertModel.id).order_by(JobAlertModel.id.asc())
            if active_only:
                stmt = stmt.where(JobAlertModel.is_active.is_(True))
            if frequencies is not None:
                stmt = stmt.where(JobAlertModel.frequency.in_(list(frequencies)))
            return list(self.session.execute(stmt).scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error listing alert ids: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list alerts: {e}") from e

    def list_for_user(self, user_id: int, active_only: bool = False) -> List[JobAlert]:
        """List a user's alerts, newest first.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = select(JobAlertModel).where(JobAlertModel.user_id == user_id)
            if active_only:
                stmt = stmt.where(JobAlertModel.is_active.is_(True))
            stmt = stmt.order_by(JobAlertModel.created_at.desc(), JobAlertModel.id.desc())
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]

        except SQLAlchemyError as e:
            logger.error(f"Error listing alerts for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list alerts: {e}") from e

    def name_exists(self, user_id: int, name: str, exclude_id: Optional[int] = None) -> bool:
        """Check whether the user already has an alert with this name.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = select(JobAlertModel.id).where(
                JobAlertModel.user_id == user_id, JobAlertModel.name == name
            )
            if exclude_id is not None:
                stmt = stmt.where(JobAlertModel.id != exclude_id)
            return self.session.execute(stmt.limit(1)).first() is not None

        except SQLAlchemyError as e:
            logger.error(f"Error checking alert name for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to check alert name: {e}") from e

    def create(self, alert: JobAlert) -> JobAlert:
        """Insert a new alert and return it with its generated id.

        Raises:
            DataIntegrityError: If the user already has an alert with this name
            PersistenceError: If database error occurs
        """
        try:
            alert_model = JobAlertModel.from_domain(alert)
            self.session.add(alert_model)
            self.session.flush()
            return alert_model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error creating alert '{alert.name}': {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to create alert due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating alert '{alert.name}': {e}", exc_info=True)
            raise PersistenceError(f"Failed to create alert: {e}") from e

    def save(self, alert: JobAlert) -> JobAlert:
        """Persist the mutated state of an existing alert.

        Recorded matches already stored are updated in place; new ones are
        appended.

        Raises:
            RecordNotFoundError: If the alert no longer exists
            DataIntegrityError: On constraint violation (e.g. duplicate match)
            PersistenceError: If database error occurs
        """
        if alert.id is None:
            raise RecordNotFoundError("Cannot save an alert that has no id; use create()")

        try:
            alert_model = self.session.get(JobAlertModel, alert.id)
            if alert_model is None:
                raise RecordNotFoundError(f"Job alert {alert.id} not found")

            alert_model.apply(alert)
            self.session.flush()
            return alert_model.to_domain()

        except RecordNotFoundError:
            raise
        except IntegrityError as e:
            logger.error(f"Integrity error saving alert {alert.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to save alert due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error saving alert {alert.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save alert: {e}") from e

    def delete(self, alert_id: int) -> bool:
        """Delete an alert and its recorded matches.

        Returns:
            True if an alert was deleted, False if none existed

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            alert_model = self.session.get(JobAlertModel, alert_id)
            if alert_model is None:
                return False
            self.session.delete(alert_model)
            self.session.flush()
            return True

        except SQLAlchemyError as e:
            logger.error(f"Error deleting alert {alert_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete alert: {e}") from e
