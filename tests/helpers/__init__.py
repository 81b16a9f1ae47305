"""Test helper utilities for job alert tests."""

from .factories import make_alert, make_job, make_user, seed

__all__ = ["make_alert", "make_job", "make_user", "seed"]
