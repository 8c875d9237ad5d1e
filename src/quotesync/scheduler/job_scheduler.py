"""Interval scheduler for periodic quote syncs."""

import asyncio
import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.events import (
    EVENT_JOB_EXECUTED,
    EVENT_JOB_ERROR,
    EVENT_JOB_MISSED,
    EVENT_JOB_MAX_INSTANCES
)

from ..utils.logging import get_logger


class SchedulerError(Exception):
    """Raised when scheduler operations fail."""
    pass


class PeriodicSyncHandle:
    """Cancellation handle for one scheduled interval job."""

    def __init__(self, scheduler: "SyncScheduler", job_id: str, interval_seconds: float):
        self._scheduler = scheduler
        self.job_id = job_id
        self.interval_seconds = interval_seconds
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled and self._scheduler.has_job(self.job_id)

    @property
    def next_run_time(self) -> Optional[datetime]:
        return self._scheduler.next_run_time(self.job_id)

    def cancel(self) -> bool:
        """Stop future ticks. Returns True if the job was still scheduled."""
        if self._cancelled:
            return False
        self._cancelled = True
        return self._scheduler.remove_job(self.job_id)


class SyncScheduler:
    """Runs coroutine jobs on a fixed interval inside the running event loop.

    Each job runs at most one instance at a time. A tick that fires while
    the previous run is still active, or that is missed by more than the
    grace period, is dropped rather than queued.
    """

    _job_counter = itertools.count(1)

    def __init__(self, misfire_grace_time: int = 1):
        """Initialize sync scheduler.

        Args:
            misfire_grace_time: Seconds a late tick may still run before it is dropped
        """
        self.misfire_grace_time = misfire_grace_time
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.job_stats: Dict[str, Dict[str, Any]] = {}
        self.logger = get_logger(self.__class__.__name__)

    @property
    def running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    def start(self) -> None:
        """Start the scheduler on the currently running event loop."""
        if self.running:
            self.logger.warning("Scheduler is already running")
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise SchedulerError(f"Scheduler must be started from a running event loop: {e}")

        self.scheduler = AsyncIOScheduler(
            event_loop=loop,
            job_defaults={
                'coalesce': False,
                'max_instances': 1,
                'misfire_grace_time': self.misfire_grace_time
            }
        )
        self.scheduler.add_listener(self._job_executed, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._job_error, EVENT_JOB_ERROR)
        self.scheduler.add_listener(self._job_missed, EVENT_JOB_MISSED)
        self.scheduler.add_listener(self._job_dropped, EVENT_JOB_MAX_INSTANCES)
        self.scheduler.start()

        self.logger.info("Sync scheduler started")

    def stop(self) -> None:
        """Stop the scheduler without waiting for running jobs."""
        if not self.running:
            return

        try:
            self.scheduler.shutdown(wait=False)
        except Exception as e:
            self.logger.error("Error stopping scheduler", error=str(e))
        finally:
            self.job_stats.clear()

        self.logger.info("Sync scheduler stopped")

    def add_interval_job(
        self,
        func: Callable[[], Awaitable[Any]],
        interval_seconds: float,
        initial_delay_seconds: float = 0.0,
        name: Optional[str] = None
    ) -> PeriodicSyncHandle:
        """Schedule ``func`` every ``interval_seconds``.

        Args:
            func: Coroutine function to run on each tick
            interval_seconds: Seconds between ticks
            initial_delay_seconds: Seconds before the first tick
            name: Human-readable job name

        Returns:
            Handle that cancels the job
        """
        if interval_seconds <= 0:
            raise SchedulerError("Interval must be positive")
        if not self.running:
            raise SchedulerError("Scheduler is not running")

        job_id = f"quote-sync-{next(self._job_counter)}"
        first_run = datetime.now(timezone.utc) + timedelta(seconds=max(initial_delay_seconds, 0.0))

        try:
            job = self.scheduler.add_job(
                func=func,
                trigger=IntervalTrigger(seconds=interval_seconds),
                id=job_id,
                name=name or job_id,
                next_run_time=first_run,
                replace_existing=True
            )
        except Exception as e:
            raise SchedulerError(f"Failed to add job {job_id}: {e}")

        self.job_stats[job_id] = {
            "interval_seconds": interval_seconds,
            "created_at": datetime.now(timezone.utc),
            "run_count": 0,
            "error_count": 0,
            "dropped_count": 0
        }

        self.logger.info(
            "Interval job added",
            job_id=job_id,
            interval_seconds=interval_seconds,
            next_run=job.next_run_time
        )

        return PeriodicSyncHandle(self, job_id, interval_seconds)

    def has_job(self, job_id: str) -> bool:
        return self.running and self.scheduler.get_job(job_id) is not None

    def next_run_time(self, job_id: str) -> Optional[datetime]:
        if not self.running:
            return None
        job = self.scheduler.get_job(job_id)
        return job.next_run_time if job else None

    def remove_job(self, job_id: str) -> bool:
        """Remove a scheduled job. Returns False if it was not scheduled."""
        if not self.has_job(job_id):
            return False

        self.scheduler.remove_job(job_id)
        self.job_stats.pop(job_id, None)
        self.logger.info("Interval job removed", job_id=job_id)
        return True

    def _job_executed(self, event):
        stats = self.job_stats.get(event.job_id)
        if stats is not None:
            stats["run_count"] += 1
        self.logger.debug("Scheduled job executed", job_id=event.job_id)

    def _job_error(self, event):
        stats = self.job_stats.get(event.job_id)
        if stats is not None:
            stats["run_count"] += 1
            stats["error_count"] += 1
        self.logger.error("Scheduled job failed", job_id=event.job_id, error=str(event.exception))

    def _job_missed(self, event):
        stats = self.job_stats.get(event.job_id)
        if stats is not None:
            stats["dropped_count"] += 1
        self.logger.warning("Scheduled tick missed", job_id=event.job_id)

    def _job_dropped(self, event):
        stats = self.job_stats.get(event.job_id)
        if stats is not None:
            stats["dropped_count"] += 1
        self.logger.warning("Scheduled tick dropped, previous run still active", job_id=event.job_id)
