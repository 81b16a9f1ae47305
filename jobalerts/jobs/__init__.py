"""Job posting maintenance."""

from .maintenance import ExpiryResult, update_expired_jobs

__all__ = ["ExpiryResult", "update_expired_jobs"]
