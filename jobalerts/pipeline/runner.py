"""Alert pass orchestration: matching, instant notifications and digests."""

import threading
from datetime import datetime
from typing import Callable, ContextManager, Iterable, List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from jobalerts.config.models import AlertsConfig
from jobalerts.domain.models import DEFAULT_DIGEST_TIME, AlertFrequency, JobAlert
from jobalerts.logging import get_logger
from jobalerts.logging.context import log_context
from jobalerts.matching.engine import JobMatcher
from jobalerts.notifications.service import NotificationService
from jobalerts.persistence.database import get_session
from jobalerts.persistence.repositories import AlertRepository, JobRepository, UserRepository
from jobalerts.utils.timestamps import ensure_utc, local_now, utc_now

from .digest import sent_in_current_window, should_send_digest
from .models import (
    STATUS_ERROR,
    STATUS_FAILED,
    STATUS_NO_NEW_MATCHES,
    STATUS_NO_PENDING,
    STATUS_NOT_DUE,
    STATUS_PROCESSED,
    STATUS_SENT,
    STATUS_SKIPPED,
    AlertOutcome,
    AlertPassResult,
    DigestPassResult,
)

logger = get_logger(__name__, component="pipeline")

DIGEST_FREQUENCIES = (AlertFrequency.DAILY.value, AlertFrequency.WEEKLY.value)
ALL_FREQUENCIES = tuple(frequency.value for frequency in AlertFrequency)


class AlertPipeline:
    """
    Runs the alert processing pass and the digest pass.

    Every alert is loaded, updated and saved in its own database session, so
    a failure while handling one alert never affects the others. Processing
    passes hold one lock per alert frequency and digest passes share one
    lock, so two passes over the same alerts never overlap in this process.
    A pass that finds any of its locks held is skipped.

    Emails go out before the alert's new state is committed. If saving fails
    after a successful send, the same matches are emailed again on the next
    pass (at-least-once delivery).
    """

    def __init__(
        self,
        notification_service: NotificationService,
        matcher: Optional[JobMatcher] = None,
        alerts_config: Optional[AlertsConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        session_factory: Callable[[], ContextManager[Session]] = get_session,
    ):
        """
        Initialize the alert pipeline.

        Args:
            notification_service: Service used for instant and digest emails
            matcher: Job matcher (creates default if None)
            alerts_config: Pass settings such as the digest window and timezone
            clock: Returns the current local time; defaults to the configured timezone
            session_factory: Context manager factory yielding database sessions
        """
        self.notification_service = notification_service
        self.matcher = matcher or JobMatcher()
        self.alerts_config = alerts_config or AlertsConfig()
        self.clock = clock or (lambda: local_now(self.alerts_config.timezone))
        self.session_factory = session_factory
        self._process_locks = {frequency: threading.Lock() for frequency in ALL_FREQUENCIES}
        self._digest_lock = threading.Lock()

    def process_job_alerts(self, frequency: Optional[str] = None) -> AlertPassResult:
        """
        Find new matches for every active alert and notify or queue them.

        For each alert: resolve the owner, match jobs, keep only jobs not yet
        recorded, email instant alerts right away, record the new matches and
        save. Instant alerts whose email fails are left untouched so the same
        matches are retried next time.

        Args:
            frequency: Only process alerts of this frequency (None = all)

        Returns:
            AlertPassResult with counters and one outcome per alert
        """
        _validate_frequency(frequency, ALL_FREQUENCIES)
        started_at = utc_now()

        held = _acquire_all(
            [self._process_locks[f] for f in ALL_FREQUENCIES if frequency in (None, f)]
        )
        if held is None:
            logger.warning(
                "Alert processing pass skipped: previous pass still in progress",
                extra={"event": "alerts.pass.skipped", "reason": "lock_held"},
            )
            return AlertPassResult(
                run_started_at=started_at,
                run_finished_at=utc_now(),
                frequency=frequency,
                skipped=True,
            )

        try:
            with log_context(run_id=uuid4().hex, pass_kind="alerts", frequency=frequency or "all"):
                now = self.clock()
                alert_ids = self._list_alert_ids([frequency] if frequency else None)
                result = AlertPassResult(
                    run_started_at=started_at,
                    run_finished_at=started_at,
                    frequency=frequency,
                    total=len(alert_ids),
                )

                logger.info(
                    f"Processing {len(alert_ids)} job alerts",
                    extra={"event": "alerts.pass.started", "alert_count": len(alert_ids)},
                )

                for alert_id in alert_ids:
                    with log_context(alert_id=alert_id):
                        result.add(self._guarded(alert_id, STATUS_ERROR, self._process_alert, now))

                result.run_finished_at = utc_now()
                logger.info(
                    f"Alert processing complete: {result.processed} processed, "
                    f"{result.notifications_sent} notified, {result.queued} queued, "
                    f"{result.errors} errors (total: {result.total})",
                    extra={
                        "event": "alerts.pass.completed",
                        "duration_ms": int(result.duration_seconds * 1000),
                        **result.summary(),
                    },
                )
                return result
        finally:
            for lock in held:
                lock.release()

    def send_alert_digests(self, frequency: Optional[str] = None) -> DigestPassResult:
        """
        Email pending matches of daily/weekly alerts that are due now.

        Args:
            frequency: "daily" or "weekly" to restrict the pass (None = both)

        Returns:
            DigestPassResult with counters and one outcome per alert
        """
        _validate_frequency(frequency, ALL_FREQUENCIES)
        started_at = utc_now()

        if not self._digest_lock.acquire(blocking=False):
            logger.warning(
                "Digest pass skipped: previous pass still in progress",
                extra={"event": "digests.pass.skipped", "reason": "lock_held"},
            )
            return DigestPassResult(
                run_started_at=started_at,
                run_finished_at=utc_now(),
                frequency=frequency,
                skipped=True,
            )

        try:
            with log_context(run_id=uuid4().hex, pass_kind="digests", frequency=frequency or "all"):
                now = self.clock()
                frequencies = [f for f in DIGEST_FREQUENCIES if frequency in (None, f)]
                alert_ids = self._list_alert_ids(frequencies) if frequencies else []
                result = DigestPassResult(
                    run_started_at=started_at,
                    run_finished_at=started_at,
                    frequency=frequency,
                    total=len(alert_ids),
                )

                logger.info(
                    f"Checking {len(alert_ids)} alerts for due digests",
                    extra={
                        "event": "digests.pass.started",
                        "alert_count": len(alert_ids),
                        "local_time": now.strftime("%A %H:%M"),
                    },
                )

                for alert_id in alert_ids:
                    with log_context(alert_id=alert_id):
                        result.add(self._guarded(alert_id, STATUS_FAILED, self._send_digest, now))

                result.run_finished_at = utc_now()
                logger.info(
                    f"Digest pass complete: {result.sent} sent, {result.failed} failed "
                    f"(total: {result.total})",
                    extra={
                        "event": "digests.pass.completed",
                        "duration_ms": int(result.duration_seconds * 1000),
                        "jobs_sent": result.jobs_sent,
                        **result.summary(),
                    },
                )
                return result
        finally:
            self._digest_lock.release()

    def run_digest_cycle(self):
        """Queue new matches for daily/weekly alerts, then send due digests.

        Returns:
            Tuple of (list of AlertPassResult, DigestPassResult)
        """
        queued = [self.process_job_alerts(frequency) for frequency in DIGEST_FREQUENCIES]
        return queued, self.send_alert_digests()

    def _list_alert_ids(self, frequencies: Optional[Iterable[str]]) -> List[int]:
        with self.session_factory() as session:
            return AlertRepository(session).list_ids(frequencies, active_only=True)

    def _guarded(self, alert_id: int, failure_status: str, handler, now: datetime) -> AlertOutcome:
        """Run one alert's handler, turning any exception into a failed outcome."""
        try:
            return handler(alert_id, now)
        except Exception as e:
            logger.error(
                f"Error handling alert {alert_id}: {e}",
                exc_info=True,
                extra={"event": "alert.failed", "error_type": type(e).__name__},
            )
            return AlertOutcome(
                alert_id=alert_id,
                status=failure_status,
                reason=f"{type(e).__name__}: {e}",
            )

    def _process_alert(self, alert_id: int, now: datetime) -> AlertOutcome:
        with self.session_factory() as session:
            alert_repo = AlertRepository(session)
            alert = alert_repo.get(alert_id)

            skip = _skip_reason(alert_id, alert)
            if skip:
                return skip

            user = UserRepository(session).get(alert.user_id)
            if user is None or not user.email:
                reason = "owner not found" if user is None else "owner has no email address"
                logger.warning(
                    f"Skipping alert '{alert.name}': {reason}",
                    extra={"event": "alert.owner_missing", "user_id": alert.user_id},
                )
                return AlertOutcome(alert_id, STATUS_ERROR, reason=reason, alert_name=alert.name)

            matches = self.matcher.find_matching_jobs(JobRepository(session), alert)
            new_jobs = alert.new_matches(matches)

            if not new_jobs:
                logger.debug(
                    f"No new matches for alert '{alert.name}'",
                    extra={"event": "alert.no_new_matches", "matched": len(matches)},
                )
                return AlertOutcome(alert_id, STATUS_NO_NEW_MATCHES, alert_name=alert.name)

            if alert.is_instant:
                if not self.notification_service.send_instant_notification(user, alert, new_jobs):
                    return AlertOutcome(
                        alert_id,
                        STATUS_ERROR,
                        reason="instant notification failed",
                        alert_name=alert.name,
                    )

            stamp = ensure_utc(now)
            alert.record_matches(new_jobs, stamp, notified=alert.is_instant)
            alert.updated_at = stamp
            alert_repo.save(alert)

        logger.info(
            f"Processed alert '{alert.name}': {len(new_jobs)} new matches",
            extra={
                "event": "alert.processed",
                "new_matches": len(new_jobs),
                "frequency": alert.frequency,
                "notified": alert.is_instant,
            },
        )
        return AlertOutcome(
            alert_id,
            STATUS_PROCESSED,
            alert_name=alert.name,
            new_matches=len(new_jobs),
            notified_jobs=len(new_jobs) if alert.is_instant else 0,
        )

    def _send_digest(self, alert_id: int, now: datetime) -> AlertOutcome:
        with self.session_factory() as session:
            alert_repo = AlertRepository(session)
            alert = alert_repo.get(alert_id)

            skip = _skip_reason(alert_id, alert)
            if skip:
                return skip

            window = self.alerts_config.digest_window_minutes
            if not should_send_digest(alert, now, window):
                reason = None
                if sent_in_current_window(
                    alert.last_digest_sent, now, alert.digest_time or DEFAULT_DIGEST_TIME, window
                ):
                    reason = "digest already sent in this window"
                return AlertOutcome(alert_id, STATUS_NOT_DUE, reason=reason, alert_name=alert.name)

            user = UserRepository(session).get(alert.user_id)
            if user is None or not user.email:
                reason = "owner not found" if user is None else "owner has no email address"
                logger.warning(
                    f"Skipping digest for alert '{alert.name}': {reason}",
                    extra={"event": "digest.owner_missing", "user_id": alert.user_id},
                )
                return AlertOutcome(alert_id, STATUS_FAILED, reason=reason, alert_name=alert.name)

            pending_ids = [entry.job_id for entry in alert.unsent_matches]
            if not pending_ids:
                logger.debug(
                    f"No pending matches for digest '{alert.name}'",
                    extra={"event": "digest.no_pending"},
                )
                return AlertOutcome(alert_id, STATUS_NO_PENDING, alert_name=alert.name)

            jobs = JobRepository(session).get_by_ids(pending_ids)
            found_ids = [job.id for job in jobs]
            found = set(found_ids)
            missing_ids = [job_id for job_id in pending_ids if job_id not in found]
            stamp = ensure_utc(now)

            if not jobs:
                logger.warning(
                    f"Pending jobs of alert '{alert.name}' no longer exist; closing them unsent",
                    extra={"event": "digest.jobs_missing", "missing_jobs": len(missing_ids)},
                )
                alert.mark_sent(missing_ids, stamp, delivered=False)
                alert.updated_at = stamp
                alert_repo.save(alert)
                return AlertOutcome(
                    alert_id, STATUS_SKIPPED, reason="pending jobs no longer exist", alert_name=alert.name
                )

            if not self.notification_service.send_digest_notification(user, alert, jobs):
                return AlertOutcome(
                    alert_id, STATUS_FAILED, reason="digest email failed", alert_name=alert.name
                )

            alert.mark_sent(found_ids, stamp)
            if missing_ids:
                alert.mark_sent(missing_ids, stamp, delivered=False)
            alert.updated_at = stamp
            alert_repo.save(alert)

        logger.info(
            f"Sent digest for '{alert.name}': {len(jobs)} jobs",
            extra={"event": "digest.sent", "job_count": len(jobs), "frequency": alert.frequency},
        )
        return AlertOutcome(
            alert_id, STATUS_SENT, alert_name=alert.name, notified_jobs=len(jobs)
        )


def _skip_reason(alert_id: int, alert: Optional[JobAlert]) -> Optional[AlertOutcome]:
    """Outcome for alerts deleted or deactivated since the pass listed them."""
    if alert is None:
        return AlertOutcome(alert_id, STATUS_SKIPPED, reason="alert no longer exists")
    if not alert.is_active:
        return AlertOutcome(alert_id, STATUS_SKIPPED, reason="alert inactive", alert_name=alert.name)
    return None


def _validate_frequency(frequency: Optional[str], allowed) -> None:
    if frequency is not None and frequency not in allowed:
        raise ValueError(f"Unknown alert frequency '{frequency}'. Expected one of: {', '.join(allowed)}")


def _acquire_all(locks: List[threading.Lock]) -> Optional[List[threading.Lock]]:
    """Take every lock without blocking; on contention release them and return None."""
    acquired = []
    for lock in locks:
        if not lock.acquire(blocking=False):
            for taken in acquired:
                taken.release()
            return None
        acquired.append(lock)
    return acquired
