"""
Scheduler runner using APScheduler with Postgres advisory locks.

This module provides a singleton scheduler that runs background jobs in a
thread pool. When several API instances run the scheduler, a Postgres
advisory lock keyed on the job id keeps a job to one instance per run;
other backends (SQLite in tests and local runs) have a single process and
skip the lock.

Usage:
    scheduler = get_scheduler()
    scheduler.add_interval_job(send_due_reminders, "booking_reminders", minutes=15)
    scheduler.start()
"""
import functools
import hashlib
from typing import Optional, Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.events import EVENT_JOB_EXECUTED, EVENT_JOB_ERROR
from sqlalchemy import text

from salonbook.lib import db as db_module
from salonbook.lib.logging import get_logger

logger = get_logger(__name__)


# Singleton scheduler instance
_scheduler: Optional["SchedulerManager"] = None


def get_lock_key(job_id: str) -> int:
    """
    Generate a consistent integer lock key from job ID for pg_advisory_lock.

    Args:
        job_id: Job identifier string

    Returns:
        Integer lock key (positive, within bigint range)
    """
    hash_bytes = hashlib.sha256(job_id.encode()).digest()[:8]
    return int.from_bytes(hash_bytes, byteorder="big", signed=False) >> 1


def with_advisory_lock(job_id: str):
    """
    Decorator running a job only if this process wins the job's advisory lock.

    The lock is session-level and taken on a dedicated connection, so it is
    held for the whole run regardless of the transactions the job commits.

    Example:
        @with_advisory_lock("booking_reminders")
        def send_due_reminders():
            ...
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            engine = db_module.SessionLocal.kw["bind"]
            if engine.dialect.name != "postgresql":
                return func(*args, **kwargs)

            lock_key = get_lock_key(job_id)
            with engine.connect() as conn:
                acquired = conn.execute(
                    text("SELECT pg_try_advisory_lock(:lock_key)"),
                    {"lock_key": lock_key},
                ).scalar()
                if not acquired:
                    logger.info(f"Job {job_id} already running (lock {lock_key}), skipping")
                    return None
                try:
                    return func(*args, **kwargs)
                finally:
                    conn.execute(text("SELECT pg_advisory_unlock(:lock_key)"), {"lock_key": lock_key})
                    conn.commit()
        return wrapper
    return decorator


class SchedulerManager:
    """
    Manager for APScheduler with lifecycle management.
    """

    def __init__(self):
        """Initialize scheduler manager."""
        self.scheduler = BackgroundScheduler(
            timezone="UTC",
            job_defaults={
                'coalesce': True,  # Combine missed runs
                'max_instances': 1,  # Only one instance per job
                'misfire_grace_time': 300,  # 5 minutes grace period
            }
        )

        self.scheduler.add_listener(self._on_job_executed, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)

        logger.info("SchedulerManager initialized")

    def _on_job_executed(self, event):
        """Handle job execution event."""
        logger.info(
            f"Job {event.job_id} executed successfully",
            extra={"job_id": event.job_id, "result": event.retval},
        )

    def _on_job_error(self, event):
        """Handle job error event."""
        logger.error(
            f"Job {event.job_id} raised {event.exception.__class__.__name__}: "
            f"{event.exception}",
            exc_info=event.exception
        )

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        """Start the scheduler."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started")
        else:
            logger.warning("Scheduler already running")

    def shutdown(self, wait: bool = True) -> None:
        """
        Shutdown the scheduler.

        Args:
            wait: Whether to wait for running jobs to finish
        """
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("Scheduler shutdown")
        else:
            logger.warning("Scheduler not running")

    def add_interval_job(
        self,
        func: Callable,
        job_id: str,
        seconds: Optional[int] = None,
        minutes: Optional[int] = None,
        hours: Optional[int] = None,
        **kwargs
    ) -> None:
        """
        Add an interval-scheduled job.

        Args:
            func: Job function
            job_id: Unique job identifier
            seconds: Interval in seconds
            minutes: Interval in minutes
            hours: Interval in hours
            **kwargs: Additional APScheduler job options
        """
        if not any([seconds, minutes, hours]):
            raise ValueError("At least one of seconds, minutes, or hours must be specified")

        trigger = IntervalTrigger(
            seconds=seconds or 0,
            minutes=minutes or 0,
            hours=hours or 0,
            timezone="UTC"
        )

        self.scheduler.add_job(
            func,
            trigger=trigger,
            id=job_id,
            replace_existing=True,
            **kwargs
        )

        logger.info(
            f"Added interval job: {job_id} "
            f"(seconds={seconds}, minutes={minutes}, hours={hours})"
        )

    def remove_job(self, job_id: str) -> None:
        """
        Remove a scheduled job.

        Args:
            job_id: Job identifier
        """
        self.scheduler.remove_job(job_id)
        logger.info(f"Removed job: {job_id}")

    def get_jobs(self) -> list:
        """Get list of scheduled jobs."""
        return self.scheduler.get_jobs()


def get_scheduler() -> SchedulerManager:
    """
    Get singleton scheduler instance.

    Returns:
        SchedulerManager instance
    """
    global _scheduler

    if _scheduler is None:
        _scheduler = SchedulerManager()

    return _scheduler


def reset_scheduler() -> None:
    """Drop the singleton, shutting it down if running (for testing)."""
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
    _scheduler = None
