"""Data models for alert pass execution tracking and reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

# Processing pass outcomes
STATUS_PROCESSED = "processed"
STATUS_NO_NEW_MATCHES = "no_new_matches"
STATUS_ERROR = "error"
STATUS_SKIPPED = "skipped"

# Digest pass outcomes
STATUS_SENT = "sent"
STATUS_NOT_DUE = "not_due"
STATUS_NO_PENDING = "no_pending"
STATUS_FAILED = "failed"


@dataclass
class AlertOutcome:
    """
    What happened to one alert during a pass.

    Attributes:
        alert_id: Alert identifier
        status: One of the STATUS_* constants
        reason: Human-readable explanation for skips and failures
        alert_name: Alert name, when the alert could be loaded
        new_matches: Jobs newly recorded against the alert
        notified_jobs: Jobs included in an email sent during this pass
    """

    alert_id: int
    status: str
    reason: Optional[str] = None
    alert_name: Optional[str] = None
    new_matches: int = 0
    notified_jobs: int = 0

    @property
    def is_failure(self) -> bool:
        return self.status in (STATUS_ERROR, STATUS_FAILED)


@dataclass
class AlertPassResult:
    """
    Aggregate result of one alert processing pass.

    Attributes:
        run_started_at: UTC timestamp when the pass began
        run_finished_at: UTC timestamp when the pass completed
        frequency: Frequency filter the pass ran with (None = all)
        processed: Alerts whose new matches were persisted
        notifications_sent: Jobs emailed immediately (instant alerts)
        queued: Jobs recorded for a later digest (daily/weekly alerts)
        errors: Alerts that failed or had no usable owner
        total: Active alerts considered
        results: One AlertOutcome per alert considered
        skipped: Whether the pass was skipped because another was running
    """

    run_started_at: datetime
    run_finished_at: datetime
    frequency: Optional[str] = None
    processed: int = 0
    notifications_sent: int = 0
    queued: int = 0
    errors: int = 0
    total: int = 0
    results: List[AlertOutcome] = field(default_factory=list)
    skipped: bool = False

    def add(self, outcome: AlertOutcome) -> None:
        self.results.append(outcome)
        if outcome.status == STATUS_PROCESSED:
            self.processed += 1
            self.notifications_sent += outcome.notified_jobs
            self.queued += outcome.new_matches - outcome.notified_jobs
        elif outcome.is_failure:
            self.errors += 1

    @property
    def had_errors(self) -> bool:
        return self.errors > 0

    @property
    def duration_seconds(self) -> float:
        return (self.run_finished_at - self.run_started_at).total_seconds()

    def summary(self) -> Dict[str, int]:
        return {
            "processed": self.processed,
            "notifications_sent": self.notifications_sent,
            "queued": self.queued,
            "errors": self.errors,
            "total": self.total,
        }


@dataclass
class DigestPassResult:
    """
    Aggregate result of one digest pass.

    Attributes:
        run_started_at: UTC timestamp when the pass began
        run_finished_at: UTC timestamp when the pass completed
        frequency: Frequency filter the pass ran with (None = daily and weekly)
        sent: Alerts whose digest was emailed
        failed: Alerts whose digest could not be sent (or had no usable owner)
        total: Active digest alerts considered
        results: One AlertOutcome per alert considered
        skipped: Whether the pass was skipped because another was running
    """

    run_started_at: datetime
    run_finished_at: datetime
    frequency: Optional[str] = None
    sent: int = 0
    failed: int = 0
    total: int = 0
    results: List[AlertOutcome] = field(default_factory=list)
    skipped: bool = False

    def add(self, outcome: AlertOutcome) -> None:
        self.results.append(outcome)
        if outcome.status == STATUS_SENT:
            self.sent += 1
        elif outcome.is_failure:
            self.failed += 1

    @property
    def had_errors(self) -> bool:
        return self.failed > 0

    @property
    def jobs_sent(self) -> int:
        return sum(outcome.notified_jobs for outcome in self.results)

    @property
    def duration_seconds(self) -> float:
        return (self.run_finished_at - self.run_started_at).total_seconds()

    def summary(self) -> Dict[str, int]:
        return {"sent": self.sent, "failed": self.failed, "total": self.total}
