"""Job expiry maintenance: close jobs past their deadline, end featured periods."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, ContextManager, Dict, Optional

from sqlalchemy.orm import Session

from jobalerts.logging import get_logger
from jobalerts.persistence.database import get_session
from jobalerts.persistence.repositories import JobRepository
from jobalerts.utils.timestamps import ensure_utc, utc_now

logger = get_logger(__name__, component="jobs")


@dataclass
class ExpiryResult:
    """Counts of jobs changed by one maintenance pass."""

    run_at: datetime
    closed_by_deadline: int = 0
    closed_by_expires_at: int = 0
    unfeatured: int = 0

    @property
    def closed(self) -> int:
        return self.closed_by_deadline + self.closed_by_expires_at

    def summary(self) -> Dict[str, int]:
        return {
            "closed_by_deadline": self.closed_by_deadline,
            "closed_by_expires_at": self.closed_by_expires_at,
            "unfeatured": self.unfeatured,
        }


def update_expired_jobs(
    now: Optional[datetime] = None,
    session_factory: Callable[[], ContextManager[Session]] = get_session,
) -> ExpiryResult:
    """
    Close active jobs whose application deadline or expiry date has passed
    and clear the featured flag of jobs whose featured period has ended.

    All three updates run in one transaction.

    Args:
        now: Cutoff time (defaults to current UTC time)
        session_factory: Context manager factory yielding database sessions

    Returns:
        ExpiryResult with the number of jobs changed by each rule

    Raises:
        PersistenceError: If the database update fails
    """
    cutoff = ensure_utc(now) if now is not None else utc_now()
    result = ExpiryResult(run_at=cutoff)

    with session_factory() as session:
        jobs = JobRepository(session)
        result.closed_by_deadline = jobs.close_past("application_deadline", cutoff)
        result.closed_by_expires_at = jobs.close_past("expires_at", cutoff)
        result.unfeatured = jobs.unfeature_expired(cutoff)

    if result.closed or result.unfeatured:
        logger.info(
            f"Job maintenance: closed {result.closed} jobs, unfeatured {result.unfeatured}",
            extra={"event": "jobs.expiry.completed", **result.summary()},
        )
    else:
        logger.debug(
            "Job maintenance: nothing to update",
            extra={"event": "jobs.expiry.completed", **result.summary()},
        )
    return result
