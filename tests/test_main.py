"""Unit tests for the main entry point.

Tests the main() function including:
- CLI argument parsing
- Log level priority (CLI > env > config)
- Single pass mode vs daemon mode
- Exit code handling
- Error handling
"""

from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest

from jobalerts.config.environment import EnvironmentConfig
from jobalerts.config.exceptions import ConfigurationError
from jobalerts.config.models import AppConfig, LoggingConfig
from jobalerts.jobs import ExpiryResult
from jobalerts.main import build_parser, build_scheduler, load_runtime_config, main, run_once
from jobalerts.pipeline.models import AlertPassResult, DigestPassResult

NOW = datetime(2025, 11, 3, 9, 0, tzinfo=timezone.utc)


def runtime_config(log_level="INFO"):
    return AppConfig(), EnvironmentConfig(log_level=log_level, database_url="sqlite:///:memory:")


class TestBuildParser:
    def test_defaults(self):
        args = build_parser().parse_args([])

        assert args.config is None
        assert args.run is None
        assert args.frequency is None
        assert args.log_level is None

    def test_single_pass_options(self):
        args = build_parser().parse_args(["--run", "digests", "--frequency", "weekly"])

        assert args.run == "digests"
        assert args.frequency == "weekly"

    def test_rejects_unknown_run_mode(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--run", "everything"])


class TestLoadRuntimeConfig:
    """Test suite for load_runtime_config helper."""

    @patch("jobalerts.main.load_config")
    def test_cli_level_wins(self, mock_load):
        mock_load.return_value = runtime_config(log_level="WARNING")

        _, env_config = load_runtime_config(None, "DEBUG")

        assert env_config.log_level == "DEBUG"

    @patch("jobalerts.main.load_config")
    def test_env_level_beats_config(self, mock_load):
        app_config = AppConfig(logging=LoggingConfig(level="ERROR"))
        mock_load.return_value = (app_config, EnvironmentConfig(log_level="WARNING"))

        _, env_config = load_runtime_config(None, None)

        assert env_config.log_level == "WARNING"

    @patch("jobalerts.main.load_config")
    def test_config_level_used_last(self, mock_load):
        app_config = AppConfig(logging=LoggingConfig(level="ERROR"))
        mock_load.return_value = (app_config, EnvironmentConfig())

        _, env_config = load_runtime_config(None, None)

        assert env_config.log_level == "ERROR"


class TestRunOnce:
    def test_alerts_pass(self):
        pipeline = Mock()
        pipeline.process_job_alerts.return_value = AlertPassResult(NOW, NOW, processed=2)

        assert run_once(pipeline, "alerts", "instant") == 0
        pipeline.process_job_alerts.assert_called_once_with("instant")

    def test_alerts_pass_with_errors(self):
        pipeline = Mock()
        pipeline.process_job_alerts.return_value = AlertPassResult(NOW, NOW, errors=1)

        assert run_once(pipeline, "alerts", None) == 1

    def test_digests_pass(self):
        pipeline = Mock()
        pipeline.send_alert_digests.return_value = DigestPassResult(NOW, NOW, failed=1)

        assert run_once(pipeline, "digests", None) == 1
        pipeline.send_alert_digests.assert_called_once_with(None)

    @patch("jobalerts.main.update_expired_jobs")
    def test_expire_jobs(self, mock_expire):
        mock_expire.return_value = ExpiryResult(run_at=NOW, closed_by_deadline=3)

        assert run_once(Mock(), "expire-jobs", None) == 0
        mock_expire.assert_called_once_with()

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            run_once(Mock(), "reindex", None)


class TestBuildScheduler:
    def test_registers_three_tasks(self):
        pipeline = Mock()
        app_config = AppConfig()

        scheduler = build_scheduler(pipeline, app_config)

        assert list(scheduler.tasks) == ["instant-alerts", "alert-digests", "expire-jobs"]
        assert (
            scheduler.tasks["instant-alerts"].interval_seconds
            == app_config.alerts.instant_interval_seconds
        )

    def test_instant_task_runs_instant_pass(self):
        pipeline = Mock()
        scheduler = build_scheduler(pipeline, AppConfig())

        scheduler.trigger_now("instant-alerts")
        scheduler.trigger_now("alert-digests")

        pipeline.process_job_alerts.assert_called_once_with("instant")
        pipeline.run_digest_cycle.assert_called_once_with()


class TestMain:
    """Test suite for main() function."""

    @patch("jobalerts.main.configure_logging")
    @patch("jobalerts.main.load_runtime_config")
    def test_single_pass_against_empty_database(self, mock_load_config, mock_configure_logging):
        mock_load_config.return_value = runtime_config()

        exit_code = main(["--run", "alerts"])

        assert exit_code == 0
        mock_configure_logging.assert_called_once()

    @patch("jobalerts.main.AlertPipeline")
    @patch("jobalerts.main.init_database")
    @patch("jobalerts.main.close_database")
    @patch("jobalerts.main.configure_logging")
    @patch("jobalerts.main.load_runtime_config")
    def test_single_pass_with_errors(
        self,
        mock_load_config,
        mock_configure_logging,
        mock_close_db,
        mock_init_db,
        mock_pipeline,
    ):
        mock_load_config.return_value = runtime_config()
        mock_pipeline.return_value.send_alert_digests.return_value = DigestPassResult(
            NOW, NOW, failed=2
        )

        exit_code = main(["--run", "digests", "--frequency", "daily"])

        assert exit_code == 1
        mock_init_db.assert_called_once_with("sqlite:///:memory:")
        mock_close_db.assert_called_once()
        mock_pipeline.return_value.send_alert_digests.assert_called_once_with("daily")

    @patch("jobalerts.main.SchedulerService")
    @patch("jobalerts.main.init_database")
    @patch("jobalerts.main.close_database")
    @patch("jobalerts.main.configure_logging")
    @patch("jobalerts.main.load_runtime_config")
    @patch("signal.signal")
    def test_daemon_mode(
        self,
        mock_signal,
        mock_load_config,
        mock_configure_logging,
        mock_close_db,
        mock_init_db,
        mock_scheduler_service,
    ):
        mock_load_config.return_value = runtime_config()
        mock_scheduler_instance = Mock()
        mock_scheduler_service.return_value = mock_scheduler_instance

        # Stop right away so the test doesn't hang
        mock_scheduler_instance.start.side_effect = KeyboardInterrupt()

        exit_code = main([])

        mock_scheduler_instance.start.assert_called_once()
        assert mock_signal.call_count == 2
        assert exit_code == 0

    @patch("jobalerts.main.load_runtime_config")
    def test_configuration_error(self, mock_load_config, capsys):
        mock_load_config.side_effect = ConfigurationError(
            "Config file not found",
            suggestions=["Create config.yaml"],
        )

        exit_code = main(["--config", "nonexistent.yaml"])

        assert exit_code == 1
        assert "Configuration Error" in capsys.readouterr().err

    @patch("jobalerts.main.configure_logging")
    @patch("jobalerts.main.load_runtime_config")
    def test_database_failure(self, mock_load_config, mock_configure_logging, capsys):
        app_config, env_config = runtime_config()
        env_config.database_url = "nosuchdriver://nowhere"
        mock_load_config.return_value = (app_config, env_config)

        exit_code = main(["--run", "alerts"])

        assert exit_code == 1
        assert "Fatal error" in capsys.readouterr().err

    @patch("jobalerts.main.load_runtime_config")
    def test_keyboard_interrupt(self, mock_load_config):
        mock_load_config.side_effect = KeyboardInterrupt()

        assert main([]) == 0

    @patch("jobalerts.main.configure_logging")
    @patch("jobalerts.main.load_runtime_config")
    def test_log_level_passed_through(self, mock_load_config, mock_configure_logging):
        mock_load_config.return_value = runtime_config(log_level="DEBUG")
        mock_configure_logging.side_effect = RuntimeError("exit early")

        assert main(["--log-level", "DEBUG"]) == 1

        mock_load_config.assert_called_once_with(None, "DEBUG")
