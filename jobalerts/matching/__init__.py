"""Job matching: predicate filters and the engine that applies them."""

from .engine import JobMatcher
from .filters import (
    ActiveStatusFilter,
    EmploymentTypeFilter,
    JobFilter,
    LocationFilter,
    PositionFilter,
    SalaryFilter,
    build_filters,
)
from .models import MatchResult

__all__ = [
    "JobMatcher",
    "MatchResult",
    "JobFilter",
    "ActiveStatusFilter",
    "PositionFilter",
    "LocationFilter",
    "SalaryFilter",
    "EmploymentTypeFilter",
    "build_filters",
]
