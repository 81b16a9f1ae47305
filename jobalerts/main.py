"""Main entry point for the job alert service."""

import argparse
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Sequence, Tuple

from dotenv import load_dotenv

from jobalerts.config.environment import EnvironmentConfig
from jobalerts.config.exceptions import ConfigurationError
from jobalerts.config.loader import load_config
from jobalerts.config.models import AppConfig
from jobalerts.domain.models import AlertFrequency
from jobalerts.jobs.maintenance import update_expired_jobs
from jobalerts.logging import get_logger
from jobalerts.logging.config import configure_logging
from jobalerts.matching.engine import JobMatcher
from jobalerts.notifications.mailer import MailClient
from jobalerts.notifications.service import NotificationService
from jobalerts.persistence.database import close_database, init_database
from jobalerts.pipeline import AlertPipeline
from jobalerts.scheduler import ScheduledTask, SchedulerService

logger = get_logger(__name__, component="cli")

RUN_CHOICES = ("alerts", "digests", "expire-jobs")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and settle the effective log level.

    Log level priority: CLI > LOG_LEVEL environment variable > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def build_pipeline(app_config: AppConfig, env_config: EnvironmentConfig) -> AlertPipeline:
    """Construct the mail client, notification service and pipeline."""
    mail_client = MailClient(env_config, use_tls=app_config.email.use_tls)
    notification_service = NotificationService(
        mail_client,
        frontend_url=env_config.frontend_url,
        email_config=app_config.email,
        instant_max_jobs=app_config.alerts.instant_max_jobs,
    )

    logger.info(
        "Services initialized",
        extra={
            "event": "services.initialized",
            "smtp_configured": mail_client.is_configured,
            "frontend_url": env_config.frontend_url,
        },
    )

    return AlertPipeline(
        notification_service,
        matcher=JobMatcher(),
        alerts_config=app_config.alerts,
    )


def build_scheduler(
    pipeline: AlertPipeline,
    app_config: AppConfig,
    shutdown_event: Optional[threading.Event] = None,
) -> SchedulerService:
    """Register the instant pass, the digest cycle and job expiry."""
    alerts = app_config.alerts
    tasks = [
        ScheduledTask(
            task_id="instant-alerts",
            name="Instant job alerts",
            func=lambda: pipeline.process_job_alerts(AlertFrequency.INSTANT.value),
            interval_seconds=alerts.instant_interval_seconds,
        ),
        ScheduledTask(
            task_id="alert-digests",
            name="Daily/weekly alert digests",
            func=pipeline.run_digest_cycle,
            interval_seconds=alerts.digest_interval_seconds,
        ),
        ScheduledTask(
            task_id="expire-jobs",
            name="Job expiry maintenance",
            func=update_expired_jobs,
            interval_seconds=alerts.expiry_interval_seconds,
        ),
    ]
    return SchedulerService(tasks, shutdown_event=shutdown_event)


def run_once(pipeline: AlertPipeline, run: str, frequency: Optional[str]) -> int:
    """
    Execute a single pass and report it.

    Returns:
        Exit code: 1 if the pass had errors, 0 otherwise
    """
    logger.info(
        f"Executing single '{run}' pass",
        extra={"event": "service.manual_run.starting", "run": run, "frequency": frequency},
    )

    if run == "alerts":
        result = pipeline.process_job_alerts(frequency)
        summary, had_errors = result.summary(), result.had_errors
    elif run == "digests":
        result = pipeline.send_alert_digests(frequency)
        summary, had_errors = result.summary(), result.had_errors
    elif run == "expire-jobs":
        result = update_expired_jobs()
        summary, had_errors = result.summary(), False
    else:
        raise ValueError(f"Unknown run mode: {run}")

    logger.info(
        f"Single '{run}' pass completed",
        extra={
            "event": "service.manual_run.completed",
            "run": run,
            "had_errors": had_errors,
            **summary,
        },
    )
    return 1 if had_errors else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="ZimPharmHub job alerts - matches new job postings and emails alert owners"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml or config/config.yaml if present)",
    )
    parser.add_argument(
        "--run",
        choices=RUN_CHOICES,
        default=None,
        help="Run a single pass immediately and exit instead of starting the scheduler",
    )
    parser.add_argument(
        "--frequency",
        choices=[frequency.value for frequency in AlertFrequency],
        default=None,
        help="Restrict the alerts/digests pass to alerts of this frequency",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point for the job alert service.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)
    load_dotenv()

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        logger.info(
            "Job alert service starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "run": args.run,
            },
        )

        init_database(env_config.database_url)

        logger.info(
            "Configuration loaded",
            extra={
                "event": "config.loaded",
                "instant_interval_seconds": app_config.alerts.instant_interval_seconds,
                "digest_interval_seconds": app_config.alerts.digest_interval_seconds,
                "expiry_interval_seconds": app_config.alerts.expiry_interval_seconds,
                "digest_window_minutes": app_config.alerts.digest_window_minutes,
                "timezone": app_config.alerts.timezone or "local",
            },
        )

        pipeline = build_pipeline(app_config, env_config)

        if args.run:
            try:
                return run_once(pipeline, args.run, args.frequency)
            finally:
                close_database()
                logger.info(
                    "Job alert service stopped",
                    extra={
                        "event": "service.stopping",
                        "uptime_seconds": round(time.time() - start_time, 2),
                    },
                )

        shutdown_event = threading.Event()
        scheduler_service = build_scheduler(pipeline, app_config, shutdown_event)

        def signal_handler(signum, frame):
            logger.info(
                f"Received signal {signum}, shutting down",
                extra={"event": "service.signal_received", "signal": signum},
            )
            scheduler_service.shutdown(wait=False)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        scheduler_service.start()

        logger.info(
            "Scheduler started. Press Ctrl+C to stop",
            extra={"event": "service.daemon_mode.started"},
        )

        try:
            shutdown_event.wait()
        except KeyboardInterrupt:
            logger.info(
                "Keyboard interrupt received, shutting down",
                extra={"event": "service.keyboard_interrupt"},
            )
            scheduler_service.shutdown(wait=False)
        finally:
            close_database()

        logger.info(
            "Job alert service stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
