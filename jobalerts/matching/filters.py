"""Predicate filters applied to jobs by the matching engine.

Each filter looks at one job field and accepts the job if the field matches
ANY of the alert's values for that field. The engine combines filters with
AND. A filter is only built when its criteria group is set.
"""

from typing import List, Optional, Sequence

from jobalerts.domain.models import AlertCriteria, Job


class JobFilter:
    """Base class for job predicates."""

    name = "filter"

    def matches(self, job: Job) -> bool:
        raise NotImplementedError

    def __call__(self, job: Job) -> bool:
        return self.matches(job)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ActiveStatusFilter(JobFilter):
    """Accept only jobs that are still open for applications."""

    name = "status"

    def matches(self, job: Job) -> bool:
        return job.is_active


class PositionFilter(JobFilter):
    """Exact membership of ``job.position`` in the alert's positions."""

    name = "position"

    def __init__(self, positions: Sequence[str]):
        self.positions = frozenset(positions)

    def matches(self, job: Job) -> bool:
        return job.position in self.positions

    def __repr__(self) -> str:
        return f"PositionFilter({sorted(self.positions)!r})"


class LocationFilter(JobFilter):
    """Case-insensitive substring match of any location against ``job.location_city``."""

    name = "location"

    def __init__(self, locations: Sequence[str]):
        self.locations = [location.lower() for location in locations]

    def matches(self, job: Job) -> bool:
        city = (job.location_city or "").lower()
        if not city:
            return False
        return any(location in city for location in self.locations)

    def __repr__(self) -> str:
        return f"LocationFilter({self.locations!r})"


class SalaryFilter(JobFilter):
    """Inclusive range check on the job's maximum salary.

    Only the bounds that are set constrain the job. A job that does not
    advertise a maximum salary never passes.
    """

    name = "salary"

    def __init__(self, minimum: Optional[float] = None, maximum: Optional[float] = None):
        self.minimum = minimum
        self.maximum = maximum

    def matches(self, job: Job) -> bool:
        if job.salary_max is None:
            return False
        if self.minimum is not None and job.salary_max < self.minimum:
            return False
        if self.maximum is not None and job.salary_max > self.maximum:
            return False
        return True

    def __repr__(self) -> str:
        return f"SalaryFilter(minimum={self.minimum!r}, maximum={self.maximum!r})"


class EmploymentTypeFilter(JobFilter):
    """Exact membership of ``job.employment_type`` in the alert's types."""

    name = "employment_type"

    def __init__(self, employment_types: Sequence[str]):
        self.employment_types = frozenset(employment_types)

    def matches(self, job: Job) -> bool:
        return job.employment_type in self.employment_types

    def __repr__(self) -> str:
        return f"EmploymentTypeFilter({sorted(self.employment_types)!r})"


def build_filters(criteria: AlertCriteria) -> List[JobFilter]:
    """Build the filter pipeline for a set of criteria.

    The status filter is always present; the others only when their group
    is non-empty (or, for salary, when at least one bound is set).
    """
    filters: List[JobFilter] = [ActiveStatusFilter()]

    if criteria.positions:
        filters.append(PositionFilter(criteria.positions))
    if criteria.locations:
        filters.append(LocationFilter(criteria.locations))
    if criteria.salary_min is not None or criteria.salary_max is not None:
        filters.append(SalaryFilter(criteria.salary_min, criteria.salary_max))
    if criteria.employment_types:
        filters.append(EmploymentTypeFilter(criteria.employment_types))

    return filters
