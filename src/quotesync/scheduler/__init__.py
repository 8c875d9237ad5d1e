"""Scheduler package for periodic sync operations."""

from .job_scheduler import SyncScheduler, PeriodicSyncHandle, SchedulerError

__all__ = [
    "SyncScheduler",
    "PeriodicSyncHandle",
    "SchedulerError"
]
