"""Scheduler service for periodic alert, digest and maintenance passes."""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from jobalerts.logging import get_logger

logger = get_logger(__name__, component="scheduler")


@dataclass
class ScheduledTask:
    """A callable run every ``interval_seconds``."""

    task_id: str
    name: str
    func: Callable[[], object]
    interval_seconds: int
    run_on_start: bool = True


class SchedulerService:
    """
    Wraps APScheduler to trigger the passes at their configured intervals.

    Uses BackgroundScheduler to run jobs in a separate thread while
    allowing the main thread to handle signals and coordinate shutdown.
    Each task is its own APScheduler job; a task never overlaps itself.
    """

    def __init__(
        self,
        tasks: Sequence[ScheduledTask],
        shutdown_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the scheduler service.

        Args:
            tasks: Tasks to register when the scheduler starts
            shutdown_event: Optional event to set on shutdown for coordination

        Raises:
            ValueError: If no tasks are given or two tasks share an id
        """
        if not tasks:
            raise ValueError("At least one scheduled task is required")

        self.tasks: Dict[str, ScheduledTask] = {}
        for task in tasks:
            if task.task_id in self.tasks:
                raise ValueError(f"Duplicate scheduled task id: {task.task_id}")
            self.tasks[task.task_id] = task

        self.shutdown_event = shutdown_event

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,  # Prevent overlapping runs
                "coalesce": True,  # If run is delayed, only execute once
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """
        Register every task and start the scheduler.

        Tasks with ``run_on_start`` execute immediately after startup;
        subsequent runs follow each task's interval. Calling start on a
        running scheduler does nothing.
        """
        if self.scheduler.running:
            logger.warning(
                "Scheduler already running",
                extra={"event": "scheduler.already_running"},
            )
            return

        now = datetime.now(timezone.utc)

        for task in self.tasks.values():
            self.scheduler.add_job(
                func=self._run_task,
                args=[task.task_id],
                trigger=IntervalTrigger(seconds=task.interval_seconds, timezone=timezone.utc),
                id=task.task_id,
                name=task.name,
                replace_existing=True,
                misfire_grace_time=task.interval_seconds,
                **({"next_run_time": now} if task.run_on_start else {}),
            )

        self.scheduler.start()

        logger.info(
            f"Scheduler started with {len(self.tasks)} tasks",
            extra={
                "event": "scheduler.started",
                "tasks": {task.task_id: task.interval_seconds for task in self.tasks.values()},
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown the scheduler gracefully.

        Args:
            wait: If True, wait for running jobs to complete before returning
        """
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self, task_id: Optional[str] = None) -> None:
        """
        Run one task (or every task) immediately in the current thread.

        Args:
            task_id: Task to run; None runs all tasks in registration order

        Raises:
            KeyError: If the task id is unknown
        """
        task_ids: List[str] = [task_id] if task_id else list(self.tasks)
        for current in task_ids:
            if current not in self.tasks:
                raise KeyError(f"Unknown scheduled task: {current}")

        logger.info(
            "Triggering immediate run",
            extra={"event": "scheduler.trigger_now", "tasks": task_ids},
        )
        for current in task_ids:
            self._run_task(current)

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self, task_id: str) -> Optional[datetime]:
        """
        Get the next scheduled run time of a task.

        Returns:
            Next run time as a datetime, or None if not scheduled
        """
        job = self.scheduler.get_job(task_id)
        return job.next_run_time if job else None

    def _run_task(self, task_id: str) -> None:
        """Run a task, logging failures so one bad run never stops the schedule."""
        task = self.tasks[task_id]
        try:
            task.func()
        except Exception as e:
            logger.error(
                f"Scheduled task '{task.name}' failed: {e}",
                exc_info=True,
                extra={
                    "event": "scheduler.task_failed",
                    "task_id": task_id,
                    "error_type": type(e).__name__,
                },
            )
