"""Unit tests for the scheduler service.

Tests the SchedulerService including:
- Task validation at construction
- Job registration with correct configuration
- Immediate first run (next_run_time set to now)
- Start/shutdown lifecycle
- Trigger now functionality
- Task failures are logged, never raised
"""

import logging
import threading
import time
from datetime import datetime
from unittest.mock import Mock

import pytest

from jobalerts.scheduler import ScheduledTask, SchedulerService


def task(task_id="alerts", func=None, interval_seconds=60, run_on_start=True):
    return ScheduledTask(
        task_id=task_id,
        name=f"Task {task_id}",
        func=func or Mock(),
        interval_seconds=interval_seconds,
        run_on_start=run_on_start,
    )


@pytest.fixture
def running():
    """Collects started schedulers and shuts them down after the test."""
    services = []
    yield services
    for service in services:
        if service.is_running():
            service.shutdown(wait=False)


class TestSchedulerService:
    """Test suite for SchedulerService."""

    def test_scheduler_initialization(self):
        shutdown_event = threading.Event()

        scheduler = SchedulerService([task("a"), task("b")], shutdown_event=shutdown_event)

        assert list(scheduler.tasks) == ["a", "b"]
        assert scheduler.shutdown_event is shutdown_event
        assert not scheduler.is_running()

    def test_requires_tasks(self):
        with pytest.raises(ValueError, match="At least one"):
            SchedulerService([])

    def test_rejects_duplicate_task_ids(self):
        with pytest.raises(ValueError, match="Duplicate"):
            SchedulerService([task("a"), task("a")])

    def test_scheduler_start_and_shutdown(self, running):
        shutdown_event = threading.Event()
        scheduler = SchedulerService([task(interval_seconds=300)], shutdown_event=shutdown_event)
        running.append(scheduler)

        scheduler.start()
        assert scheduler.is_running()

        scheduler.shutdown(wait=False)
        assert not scheduler.is_running()
        assert shutdown_event.is_set()

    def test_jobs_registered_with_task_settings(self, running):
        scheduler = SchedulerService(
            [task("alerts", interval_seconds=60), task("digests", interval_seconds=300)]
        )
        running.append(scheduler)

        scheduler.start()

        alerts_job = scheduler.scheduler.get_job("alerts")
        digests_job = scheduler.scheduler.get_job("digests")
        assert alerts_job.name == "Task alerts"
        assert alerts_job.max_instances == 1
        assert alerts_job.coalesce is True
        assert alerts_job.misfire_grace_time == 60
        assert digests_job.trigger.interval.total_seconds() == 300

    def test_immediate_first_run(self, running):
        called = threading.Event()
        scheduler = SchedulerService([task(func=called.set, interval_seconds=3600)])
        running.append(scheduler)

        scheduler.start()

        assert called.wait(timeout=5)

    def test_delayed_first_run(self, running):
        func = Mock()
        scheduler = SchedulerService([task(func=func, interval_seconds=3600, run_on_start=False)])
        running.append(scheduler)

        scheduler.start()
        time.sleep(0.2)

        func.assert_not_called()
        next_run = scheduler.get_next_run_time("alerts")
        assert next_run is not None
        assert (next_run - datetime.now(next_run.tzinfo)).total_seconds() > 3000

    def test_get_next_run_time(self, running):
        scheduler = SchedulerService([task(interval_seconds=60, run_on_start=False)])
        running.append(scheduler)

        assert scheduler.get_next_run_time("alerts") is None

        scheduler.start()

        assert isinstance(scheduler.get_next_run_time("alerts"), datetime)
        assert scheduler.get_next_run_time("unknown") is None

    def test_multiple_start_calls_safe(self, running):
        scheduler = SchedulerService([task(interval_seconds=60)])
        running.append(scheduler)

        scheduler.start()
        scheduler.start()

        assert scheduler.is_running()

    def test_scheduler_with_no_shutdown_event(self, running):
        scheduler = SchedulerService([task()], shutdown_event=None)
        running.append(scheduler)

        scheduler.start()
        scheduler.shutdown(wait=False)

        assert not scheduler.is_running()

    def test_shutdown_before_start(self):
        shutdown_event = threading.Event()
        scheduler = SchedulerService([task()], shutdown_event=shutdown_event)

        scheduler.shutdown()

        assert shutdown_event.is_set()


class TestTriggerNow:
    def test_runs_one_task(self):
        first, second = Mock(), Mock()
        scheduler = SchedulerService([task("a", func=first), task("b", func=second)])

        scheduler.trigger_now("b")

        first.assert_not_called()
        second.assert_called_once_with()

    def test_runs_all_tasks_in_order(self):
        calls = []
        scheduler = SchedulerService(
            [task("a", func=lambda: calls.append("a")), task("b", func=lambda: calls.append("b"))]
        )

        scheduler.trigger_now()

        assert calls == ["a", "b"]

    def test_unknown_task(self):
        scheduler = SchedulerService([task("a")])

        with pytest.raises(KeyError):
            scheduler.trigger_now("nope")

    def test_failing_task_is_logged_not_raised(self, caplog):
        after = Mock()
        scheduler = SchedulerService(
            [task("bad", func=Mock(side_effect=RuntimeError("boom"))), task("good", func=after)]
        )

        with caplog.at_level(logging.ERROR):
            scheduler.trigger_now()

        after.assert_called_once_with()
        failures = [r for r in caplog.records if getattr(r, "event", None) == "scheduler.task_failed"]
        assert len(failures) == 1
        assert failures[0].task_id == "bad"
        assert failures[0].error_type == "RuntimeError"
