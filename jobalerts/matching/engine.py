"""Job matching engine for evaluating jobs against alert criteria.

Matching reads the active jobs from the job repository (newest first) and
runs them through the filter pipeline built from the alert's criteria.
Matching has no side effects.
"""

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from jobalerts.domain.models import AlertCriteria, Job, JobAlert
from jobalerts.persistence.repositories import JobRepository

from .filters import JobFilter, build_filters
from .models import MatchResult

logger = logging.getLogger(__name__)


def _criteria_of(alert_or_criteria: Union[JobAlert, AlertCriteria]) -> AlertCriteria:
    if isinstance(alert_or_criteria, JobAlert):
        return alert_or_criteria.criteria
    return alert_or_criteria


class JobMatcher:
    """Evaluates jobs against job alert criteria."""

    def __init__(self, logger_instance: logging.Logger = None):
        """Initialize JobMatcher.

        Args:
            logger_instance: Optional logger instance (defaults to module logger)
        """
        self.logger = logger_instance or logger

    def evaluate(self, job: Job, criteria: Union[JobAlert, AlertCriteria]) -> MatchResult:
        """Evaluate a single job, recording which filters passed or failed.

        Args:
            job: Job to evaluate
            criteria: Alert or its criteria

        Returns:
            MatchResult with the per-filter outcome
        """
        return self._evaluate(job, build_filters(_criteria_of(criteria)))

    def _evaluate(self, job: Job, filters: Sequence[JobFilter]) -> MatchResult:
        passed: List[str] = []
        failed: List[str] = []

        for job_filter in filters:
            if job_filter(job):
                passed.append(job_filter.name)
            else:
                failed.append(job_filter.name)

        return MatchResult(
            job_id=job.id,
            is_match=not failed,
            passed_filters=passed,
            failed_filters=failed,
        )

    def filter_jobs(
        self,
        jobs: Iterable[Job],
        criteria: Union[JobAlert, AlertCriteria],
        limit: Optional[int] = None,
    ) -> List[Job]:
        """Apply the filter pipeline to already-loaded jobs.

        Input order is preserved. Stops after ``limit`` matches if given.
        """
        matches, _ = self._filter(jobs, build_filters(_criteria_of(criteria)), limit)
        return matches

    def _filter(
        self, jobs: Iterable[Job], filters: Sequence[JobFilter], limit: Optional[int]
    ) -> Tuple[List[Job], Dict[str, int]]:
        """Matching jobs plus, per filter name, how many jobs it rejected."""
        matches: List[Job] = []
        rejected_by: Counter = Counter()

        for job in jobs:
            if limit is not None and len(matches) >= limit:
                break
            result = self._evaluate(job, filters)
            if result.is_match:
                matches.append(job)
            else:
                rejected_by.update(result.failed_filters)

        return matches, dict(rejected_by)

    def find_matching_jobs(
        self,
        job_repository: JobRepository,
        alert: Union[JobAlert, AlertCriteria],
        limit: Optional[int] = None,
    ) -> List[Job]:
        """Return active jobs matching the alert, most recent first.

        Args:
            job_repository: Repository bound to an open session
            alert: Alert (or bare criteria) to match
            limit: Optional cap on the number of matches returned

        Returns:
            Matching jobs ordered by created_at descending

        Raises:
            PersistenceError: If loading jobs fails
        """
        if limit is not None and limit <= 0:
            return []

        active_jobs = job_repository.get_active()
        matches, rejected_by = self._filter(
            active_jobs, build_filters(_criteria_of(alert)), limit
        )

        self.logger.debug(
            f"Matched {len(matches)} of {len(active_jobs)} active jobs",
            extra={
                "event": "matching.completed",
                "alert_id": getattr(alert, "id", None),
                "active_jobs": len(active_jobs),
                "matched": len(matches),
                "rejected_by": rejected_by,
            },
        )
        return matches
