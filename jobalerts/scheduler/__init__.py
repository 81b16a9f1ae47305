"""Periodic execution of the alert passes."""

from .service import ScheduledTask, SchedulerService

__all__ = ["ScheduledTask", "SchedulerService"]
