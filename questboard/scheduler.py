"""
Background job scheduler using APScheduler.

This module owns the recurring Quest Board jobs: claim expiry, cooldown
expiry, data cleanup, health checks and admin reminders. Each job has an
in-memory JobStatus tracking its last and next run, whether it is running
and its consecutive error count.

A job never runs twice at the same time: a firing that arrives while the
previous run (scheduled or manual) is still going is skipped, and a manual
trigger during a run is refused.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
import atexit
import logging
import threading

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from flask import has_app_context

from services.errors import ConfigurationError, InvalidStateError, NotFoundError
from utils.timezone import utc_now, to_naive_utc, isoformat_utc

logger = logging.getLogger(__name__)

SCHEDULER_TIMEZONE = 'UTC'


@dataclass
class JobStatus:
    """Run state of a single registered job."""

    name: str
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    is_running: bool = False
    error_count: int = 0
    last_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'last_run': isoformat_utc(self.last_run),
            'next_run': isoformat_utc(self.next_run),
            'is_running': self.is_running,
            'error_count': self.error_count,
            'last_error': self.last_error
        }


class JobScheduler:
    """Registry of named cron jobs backed by a BackgroundScheduler."""

    def __init__(self, app=None):
        self.app = None
        self._backend = BackgroundScheduler(timezone=SCHEDULER_TIMEZONE)
        self._handlers = {}
        self._triggers = {}
        self._statuses = {}
        self._lock = threading.Lock()

        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.app = app
        app.extensions['job_scheduler'] = self

    @property
    def running(self) -> bool:
        return self._backend.running

    @staticmethod
    def _next_fire_time(trigger) -> Optional[datetime]:
        next_fire = trigger.get_next_fire_time(None, datetime.now(timezone.utc))
        return to_naive_utc(next_fire) if next_fire else None

    def register_job(self, name: str, schedule: str, handler: Callable[[], object]):
        """
        Register (or replace) a job.

        Args:
            name: Unique job name
            schedule: Five-field cron expression, evaluated in UTC
            handler: Callable run inside the app context

        Raises:
            ConfigurationError: Missing name/handler or invalid cron expression
        """
        if not name:
            raise ConfigurationError('Job name is required')
        if handler is None or not callable(handler):
            raise ConfigurationError(f'Job {name} has no handler')
        if not schedule:
            raise ConfigurationError(f'Job {name} has no schedule')

        try:
            trigger = CronTrigger.from_crontab(schedule, timezone=SCHEDULER_TIMEZONE)
        except ValueError as e:
            raise ConfigurationError(f'Invalid schedule for job {name}: {e}') from e

        with self._lock:
            self._handlers[name] = handler
            self._triggers[name] = trigger
            self._statuses[name] = JobStatus(name=name, next_run=self._next_fire_time(trigger))

        if self._backend.get_job(name):
            self._backend.remove_job(name)

        self._backend.add_job(
            self.run_scheduled,
            trigger=trigger,
            args=[name],
            id=name,
            name=name,
            replace_existing=True,
            coalesce=True
        )

        logger.info(f"Scheduled job: {name} with cron: {schedule}")

    def initialize_jobs(self):
        """Register the fixed Quest Board job set."""
        from jobs.quest_expiry import handle_quest_claim_expiry, handle_quest_cooldown_expiry
        from jobs.cleanup import handle_cleanup_old_data
        from jobs.health_check import handle_health_check
        from jobs.admin_notifications import handle_notify_admins_pending_approvals

        # Claim expiry every hour
        self.register_job('quest-claim-expiry', '0 * * * *', handle_quest_claim_expiry)

        # Cooldown expiry every hour
        self.register_job('quest-cooldown-expiry', '0 * * * *', handle_quest_cooldown_expiry)

        # Cleanup daily at 02:00
        self.register_job('cleanup-old-data', '0 2 * * *', handle_cleanup_old_data)

        # Health check every 30 minutes
        self.register_job('health-check', '*/30 * * * *', handle_health_check)

        # Admin reminders every 10 minutes
        self.register_job('notify-admins-pending-approvals', '*/10 * * * *',
                          handle_notify_admins_pending_approvals)

        logger.info(f"Initialized {len(self._handlers)} scheduled jobs")

    def _call(self, handler):
        if has_app_context():
            return handler()
        with self.app.app_context():
            return handler()

    def run_scheduled(self, name: str) -> bool:
        """
        Run a job as a scheduled firing.

        Errors are logged and recorded on the JobStatus instead of raised so
        the schedule keeps going.

        Returns:
            bool: True if the handler ran and succeeded
        """
        with self._lock:
            status = self._statuses.get(name)
            handler = self._handlers.get(name)
            trigger = self._triggers.get(name)

            if status is None or handler is None:
                logger.warning(f"Job {name} fired but is not registered")
                return False

            if status.is_running:
                logger.warning(f"Job {name} is already running, skipping")
                return False

            status.is_running = True
            status.last_run = utc_now()

        logger.info(f"Starting job: {name}")
        succeeded = False

        try:
            self._call(handler)
            succeeded = True
        except Exception as e:
            logger.error(f"Job {name} failed: {e}", exc_info=True)
            with self._lock:
                status.error_count += 1
                status.last_error = str(e)
        else:
            with self._lock:
                status.error_count = 0
                status.last_error = None
            logger.info(f"Completed job: {name}")
        finally:
            with self._lock:
                status.is_running = False
                status.next_run = self._next_fire_time(trigger)

        return succeeded

    def trigger_job(self, name: str):
        """
        Run a job immediately and synchronously, outside its schedule.

        Holds the job's ``is_running`` latch for the duration, so a scheduled
        firing during a manual run is skipped and vice versa. Handler errors
        propagate to the caller; last_run and the error count are untouched.

        Raises:
            NotFoundError: Unknown job name
            InvalidStateError: The job is already running
        """
        with self._lock:
            handler = self._handlers.get(name)
            status = self._statuses.get(name)
            if handler is None or status is None:
                raise NotFoundError('Job not found')
            if status.is_running:
                raise InvalidStateError(f'Job {name} is already running')
            status.is_running = True

        logger.info(f"Manually triggering job: {name}")
        try:
            return self._call(handler)
        finally:
            with self._lock:
                status.is_running = False

    def stop_job(self, name: str):
        """
        Cancel future firings of a job and forget its status.

        Raises:
            NotFoundError: Unknown job name
        """
        with self._lock:
            if name not in self._handlers:
                raise NotFoundError('Job not found')
            del self._handlers[name]
            del self._triggers[name]
            del self._statuses[name]

        if self._backend.get_job(name):
            self._backend.remove_job(name)

        logger.info(f"Stopped job: {name}")

    def stop_all_jobs(self):
        for name in list(self._handlers):
            self.stop_job(name)
        logger.info("Stopped all scheduled jobs")

    def get_job_status(self, name: str) -> Optional[dict]:
        status = self._statuses.get(name)
        return status.to_dict() if status else None

    def get_all_job_statuses(self) -> list:
        with self._lock:
            return [status.to_dict() for status in self._statuses.values()]

    def start(self):
        if self._backend.running:
            return
        self._backend.start()
        logger.info("Background scheduler started with %d jobs", len(self._backend.get_jobs()))

    def shutdown(self):
        """Shutdown the background scheduler gracefully."""
        if self._backend.running:
            self._backend.shutdown(wait=False)
            logger.info("Background scheduler stopped")


def init_scheduler(app) -> JobScheduler:
    """
    Create the app's job scheduler and start it when enabled.

    Jobs are always registered so they can be inspected and triggered; the
    background thread only starts if SCHEDULER_ENABLED and not TESTING.

    Args:
        app: Flask application instance

    Returns:
        JobScheduler: The scheduler bound to the app
    """
    job_scheduler = JobScheduler(app)
    job_scheduler.initialize_jobs()

    if not app.config.get('SCHEDULER_ENABLED', True):
        logger.info("Background scheduler disabled via configuration")
        return job_scheduler

    # Don't run scheduler in testing mode
    if app.config.get('TESTING', False):
        logger.info("Background scheduler disabled in testing mode")
        return job_scheduler

    job_scheduler.start()

    # Register shutdown handler
    atexit.register(job_scheduler.shutdown)

    return job_scheduler


def get_scheduler(app=None) -> JobScheduler:
    """
    Get the scheduler bound to an app (the current app by default).

    Returns:
        JobScheduler: The scheduler instance
    """
    if app is None:
        from flask import current_app
        app = current_app
    return app.extensions['job_scheduler']
