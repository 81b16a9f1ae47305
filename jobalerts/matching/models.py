"""Data models for the matching engine."""

from dataclasses import dataclass, field
from typing import List


@dataclass
class MatchResult:
    """Result of evaluating one job against an alert's criteria.

    Attributes:
        job_id: Job that was evaluated
        is_match: True if every filter accepted the job
        passed_filters: Names of filters that accepted the job
        failed_filters: Names of filters that rejected the job
    """

    job_id: int
    is_match: bool
    passed_filters: List[str] = field(default_factory=list)
    failed_filters: List[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        if self.is_match:
            return "matched: " + (", ".join(self.passed_filters) or "no filters")
        return "rejected by: " + ", ".join(self.failed_filters)
