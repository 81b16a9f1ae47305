"""Alert management: ownership-checked CRUD, match previews and test emails."""

import logging
from typing import Callable, ContextManager, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from jobalerts.config.models import AlertsConfig
from jobalerts.domain.models import AlertCriteria, AlertFrequency, JobAlert
from jobalerts.logging import get_logger
from jobalerts.matching.engine import JobMatcher
from jobalerts.notifications.service import NotificationService
from jobalerts.persistence.database import get_session
from jobalerts.persistence.exceptions import DataIntegrityError
from jobalerts.persistence.repositories import AlertRepository, JobRepository, UserRepository
from jobalerts.utils.timestamps import utc_now

from .exceptions import (
    AlertAccessDeniedError,
    AlertNotFoundError,
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
    RecentMatches,
    PreviewEmailReport,
)

logger = get_logger(__name__, component="alerts")

CRITERIA_FIELDS = ("positions", "locations", "salary_min", "salary_max", "employment_types")


class AlertService:
    """Operations a user performs on their own job alerts.

    Every operation on an existing alert checks that the acting user owns it.
    """

    def __init__(
        self,
        notification_service: Optional[NotificationService] = None,
        matcher: Optional[JobMatcher] = None,
        session_factory: Callable[[], ContextManager[Session]] = get_session,
        alerts_config: Optional[AlertsConfig] = None,
        recent_limit: int = 5,
        clock: Callable = utc_now,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.notification_service = notification_service
        self.matcher = matcher or JobMatcher()
        self.session_factory = session_factory
        self.alerts_config = alerts_config or AlertsConfig()
        self.recent_limit = recent_limit
        self.clock = clock
        self.logger = logger_instance or logger

    def create_alert(self, user_id: int, data: AlertCreate) -> JobAlert:
        """Create an alert for a user.

        Raises:
            DuplicateAlertNameError: If the user already has an alert with this name
            InvalidAlertError: If the criteria or schedule are not valid
        """
        now = self.clock()
        try:
            alert = JobAlert(
                user_id=user_id,
                name=data.name,
                description=data.description,
                is_active=data.is_active,
                criteria=AlertCriteria(**data.model_dump(include=set(CRITERIA_FIELDS))),
                notification_method=data.notification_method,
                frequency=data.frequency,
                digest_day=data.digest_day,
                digest_time=data.digest_time,
                created_at=now,
                updated_at=now,
            )
        except ValidationError as e:
            raise InvalidAlertError(str(e)) from e

        with self.session_factory() as session:
            repo = AlertRepository(session)
            if repo.name_exists(user_id, alert.name):
                raise DuplicateAlertNameError(alert.name)
            try:
                created = repo.create(alert)
            except DataIntegrityError as e:
                raise DuplicateAlertNameError(alert.name) from e

        self.logger.info(
            f"Created job alert '{created.name}' for user {user_id}",
            extra={"event": "alert.created", "alert_id": created.id, "frequency": created.frequency},
        )
        return created

    def list_alerts(self, user_id: int, active_only: bool = False) -> List[JobAlert]:
        """List a user's alerts, newest first."""
        with self.session_factory() as session:
            return AlertRepository(session).list_for_user(user_id, active_only=active_only)

    def get_alert(self, user_id: int, alert_id: int) -> JobAlert:
        """Fetch one of the user's alerts.

        Raises:
            AlertNotFoundError: If the alert does not exist
            AlertAccessDeniedError: If another user owns the alert
        """
        with self.session_factory() as session:
            return self._owned_alert(AlertRepository(session), user_id, alert_id)

    def update_alert(self, user_id: int, alert_id: int, changes: AlertUpdate) -> JobAlert:
        """Apply a partial update to one of the user's alerts.

        Recorded matches and counters are never changed by an update.

        Raises:
            AlertNotFoundError: If the alert does not exist
            AlertAccessDeniedError: If another user owns the alert
            DuplicateAlertNameError: If renaming clashes with another of the user's alerts
            InvalidAlertError: If the merged settings are not valid
        """
        provided = changes.model_dump(exclude_unset=True)

        with self.session_factory() as session:
            repo = AlertRepository(session)
            alert = self._owned_alert(repo, user_id, alert_id)

            if "name" in provided and repo.name_exists(user_id, provided["name"], exclude_id=alert_id):
                raise DuplicateAlertNameError(provided["name"])

            criteria_changes = {k: v for k, v in provided.items() if k in CRITERIA_FIELDS}
            alert_changes = {k: v for k, v in provided.items() if k not in CRITERIA_FIELDS}

            criteria = alert.criteria.model_dump()
            criteria.update({k: (v if v is not None else _empty(k)) for k, v in criteria_changes.items()})

            merged = alert.model_dump()
            merged.update(alert_changes)
            merged["criteria"] = criteria
            merged["updated_at"] = self.clock()
            try:
                updated = JobAlert.model_validate(merged)
            except ValidationError as e:
                raise InvalidAlertError(str(e)) from e
            if updated.frequency == AlertFrequency.WEEKLY and not updated.digest_day:
                raise InvalidAlertError("Weekly alerts require a digest_day")

            try:
                saved = repo.save(updated)
            except DataIntegrityError as e:
                raise DuplicateAlertNameError(updated.name) from e

        self.logger.info(
            f"Updated job alert {alert_id}",
            extra={"event": "alert.updated", "alert_id": alert_id, "fields": sorted(provided)},
        )
        return saved

    def delete_alert(self, user_id: int, alert_id: int) -> None:
        """Delete one of the user's alerts (its recorded matches go with it).

        Raises:
            AlertNotFoundError: If the alert does not exist
            AlertAccessDeniedError: If another user owns the alert
        """
        with self.session_factory() as session:
            repo = AlertRepository(session)
            self._owned_alert(repo, user_id, alert_id)
            repo.delete(alert_id)

        self.logger.info(
            f"Deleted job alert {alert_id}",
            extra={"event": "alert.deleted", "alert_id": alert_id},
        )

    def check_matches(self, user_id: int, alert_id: int) -> MatchPreview:
        """Preview what the alert matches right now without changing it."""
        with self.session_factory() as session:
            alert = self._owned_alert(AlertRepository(session), user_id, alert_id)
            matches = self.matcher.find_matching_jobs(JobRepository(session), alert)

        return MatchPreview(
            alert_id=alert_id,
            total_matches=len(matches),
            new_matches=len(alert.new_matches(matches)),
            matching_jobs=[JobSummary.from_job(job) for job in matches],
        )

    def recent_matches(self, user_id: int, alert_id: int) -> RecentMatches:
        """The match count and the newest few matching jobs."""
        with self.session_factory() as session:
            alert = self._owned_alert(AlertRepository(session), user_id, alert_id)
            matches = self.matcher.find_matching_jobs(JobRepository(session), alert)

        return RecentMatches(
            alert_id=alert_id,
            alert_name=alert.name,
            total_matches=len(matches),
            matched_at=self.clock(),
            recent_matches=[JobSummary.from_job(job) for job in matches[: self.recent_limit]],
        )

    def send_test_notification(self, user_id: int, alert_id: int) -> PreviewEmailReport:
        """Email the user a ``[TEST]`` sample of what the alert matches.

        Nothing is recorded against the alert.

        Raises:
            AlertNotFoundError: If the alert does not exist
            AlertAccessDeniedError: If another user owns the alert
            UserNotFoundError: If the user record is missing
            NoMatchingJobsError: If the alert matches no jobs
            NotificationDeliveryError: If the email could not be sent
        """
        if self.notification_service is None:
            raise NotificationDeliveryError("No notification service configured")

        with self.session_factory() as session:
            alert = self._owned_alert(AlertRepository(session), user_id, alert_id)
            user = UserRepository(session).get(user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            samples = self.matcher.find_matching_jobs(
                JobRepository(session), alert, limit=self.alerts_config.test_sample_size
            )

        if not samples:
            raise NoMatchingJobsError("No matching jobs found for preview")

        result = self.notification_service.send_test_notification(user, alert, samples)
        if not result.is_success():
            raise NotificationDeliveryError(f"Error sending test notification: {result.error}")

        return PreviewEmailReport(
            alert_id=alert_id, message_id=result.message_id, jobs_preview=len(samples)
        )

    def _owned_alert(self, repo: AlertRepository, user_id: int, alert_id: int) -> JobAlert:
        alert = repo.get(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        if alert.user_id != user_id:
            self.logger.warning(
                f"User {user_id} denied access to job alert {alert_id}",
                extra={"event": "alert.access_denied", "alert_id": alert_id, "user_id": user_id},
            )
            raise AlertAccessDeniedError(alert_id, user_id)
        return alert


def _empty(field_name: str):
    """Value that clears a criteria field when an update sets it to None."""
    if field_name in ("salary_min", "salary_max"):
        return None
    return []
