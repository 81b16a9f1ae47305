"""Template context builders for alert emails."""

from typing import Dict, List, Optional, Sequence

from jobalerts.domain.models import Job, JobAlert, User


def format_amount(value: Optional[float]) -> str:
    """Render a salary figure, dropping cents on whole amounts."""
    if value is None:
        return "N/A"
    if float(value).is_integer():
        return f"{value:,.0f}"
    return f"{value:,.2f}"


def format_salary(job: Job) -> Optional[str]:
    """Return "min - max CUR", or None when the job lists no salary."""
    if not job.salary_min and not job.salary_max:
        return None
    return (
        f"{format_amount(job.salary_min or None)} - {format_amount(job.salary_max or None)} "
        f"{job.salary_currency or 'ZWL'}"
    )


def job_url(job: Job, frontend_url: str) -> str:
    return f"{frontend_url.rstrip('/')}/jobs/{job.id}"


def build_job_context(job: Job, frontend_url: str) -> Dict:
    """Flatten one job into the fields every alert template lists."""
    return {
        "id": job.id,
        "title": job.title,
        "position": job.position,
        "location": job.location or "Unknown",
        "employment_type": job.employment_type or "Not specified",
        "salary": format_salary(job),
        "url": job_url(job, frontend_url),
    }


def _base_context(user: User, alert: JobAlert, frontend_url: str) -> Dict:
    return {
        "recipient_name": user.first_name or "there",
        "alert_name": alert.name,
        "jobs_url": f"{frontend_url.rstrip('/')}/jobs",
        "alerts_url": f"{frontend_url.rstrip('/')}/job-alerts",
    }


def build_instant_context(
    user: User, alert: JobAlert, jobs: Sequence[Job], frontend_url: str, max_jobs: int = 10
) -> Dict:
    """Context for an instant alert listing at most ``max_jobs`` of the new jobs.

    ``total_jobs`` is the number of new matches, which may exceed the listed jobs.
    """
    listed: List[Dict] = [build_job_context(job, frontend_url) for job in jobs[:max_jobs]]
    return {
        **_base_context(user, alert, frontend_url),
        "jobs": listed,
        "total_jobs": len(jobs),
        "remaining_jobs": max(len(jobs) - len(listed), 0),
    }


def build_digest_context(user: User, alert: JobAlert, jobs: Sequence[Job], frontend_url: str) -> Dict:
    """Context for a daily or weekly digest, including the aggregate stats."""
    digest_type = "Daily" if alert.frequency == "daily" else "Weekly"
    return {
        **_base_context(user, alert, frontend_url),
        "digest_type": digest_type,
        "jobs": [build_job_context(job, frontend_url) for job in jobs],
        "job_count": len(jobs),
        "total_matches": alert.total_matches,
    }


def build_test_context(user: User, alert: JobAlert, jobs: Sequence[Job], frontend_url: str) -> Dict:
    """Context for the test email sent when a user checks an alert."""
    return {
        **_base_context(user, alert, frontend_url),
        "jobs": [build_job_context(job, frontend_url) for job in jobs],
        "job_count": len(jobs),
        "frequency": alert.frequency,
    }
