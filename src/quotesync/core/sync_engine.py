"""Core sync engine reconciling the local quote store with the remote server."""

import asyncio
import itertools
import inspect
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Callable, List, Optional, Set

from .notifications import NotificationSink, Severity
from ..api_clients.base import BaseRemoteClient
from ..config.settings import get_settings
from ..scheduler.job_scheduler import PeriodicSyncHandle, SyncScheduler
from ..store.models import Record
from ..store.record_store import RecordStore
from ..utils.logging import get_logger, log_duration, sync_context


SYNCING_MESSAGE = "Syncing with server..."
CONNECT_FAILED_MESSAGE = "Could not connect to server."
NO_QUOTES_MESSAGE = "No quotes received from server."
SYNCED_MESSAGE = "Quotes synced with server!"
UP_TO_DATE_MESSAGE = "Quotes are already up-to-date."
PUSH_SUCCESS_MESSAGE = "Quote saved to server!"
PUSH_FAILED_MESSAGE = "Quote saved locally, but failed to sync to server."


class SyncOutcome(str, Enum):
    """How a pull ended."""
    SYNCED = "synced"
    UP_TO_DATE = "up_to_date"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class SyncResult:
    """Result of a pull operation."""

    outcome: SyncOutcome
    fetched: int = 0
    added: int = 0
    error_message: Optional[str] = None
    sync_duration: Optional[float] = None

    @property
    def skipped(self) -> int:
        """Fetched quotes dropped because their text was already present."""
        return self.fetched - self.added

    @property
    def success(self) -> bool:
        return self.outcome in (SyncOutcome.SYNCED, SyncOutcome.UP_TO_DATE)


class SyncEngine:
    """Pulls remote quotes into the store and pushes new local quotes.

    Merging is additive and local-authoritative: a remote quote is admitted
    only if no local quote has the same text, and push outcomes never alter
    the store. At most one pull runs at a time; a pull issued while another
    is in flight returns a ``SKIPPED`` result without touching the remote.
    """

    def __init__(
        self,
        store: RecordStore,
        client: BaseRemoteClient,
        notifier: NotificationSink,
        timeout_seconds: Optional[float] = None,
        scheduler: Optional[SyncScheduler] = None
    ):
        """Initialize sync engine.

        Args:
            store: Local quote store
            client: Remote quote client
            notifier: Sink for user-visible status messages
            timeout_seconds: Upper bound on a single fetch or create
            scheduler: Scheduler for periodic pulls, created on demand if omitted
        """
        settings = get_settings()

        self.store = store
        self.client = client
        self.notifier = notifier
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.remote.timeout_seconds
        self.logger = get_logger(self.__class__.__name__)

        self._syncing = False
        self._sync_runs = itertools.count(1)
        self._refresh_listeners: List[Callable[[], Any]] = []
        self._pending_pushes: Set[asyncio.Task] = set()

        self._scheduler = scheduler
        self._owns_scheduler = scheduler is None
        self._handles: List[PeriodicSyncHandle] = []

    @property
    def is_syncing(self) -> bool:
        return self._syncing

    def add_refresh_listener(self, callback: Callable[[], Any]) -> None:
        """Register a callback fired after a pull that added quotes."""
        self._refresh_listeners.append(callback)

    @asynccontextmanager
    async def _sync_guard(self) -> AsyncIterator[bool]:
        """Hold the single-flight guard; yields False if it is already held."""
        if self._syncing:
            yield False
            return

        self._syncing = True
        try:
            yield True
        finally:
            self._syncing = False

    @log_duration
    async def pull(self) -> SyncResult:
        """Fetch remote quotes and merge the ones whose text is new."""
        start_time = time.monotonic()

        async with self._sync_guard() as acquired:
            if not acquired:
                self.logger.debug("Sync already in progress, skipping")
                return SyncResult(outcome=SyncOutcome.SKIPPED)

            with sync_context(sync_run=next(self._sync_runs)):
                self.notifier.display(SYNCING_MESSAGE, Severity.INFO)
                result = await self._reconcile()
                result.sync_duration = time.monotonic() - start_time

                self.logger.info(
                    "Sync completed",
                    outcome=result.outcome.value,
                    fetched=result.fetched,
                    added=result.added,
                    duration=f"{result.sync_duration:.2f}s"
                )

        return result

    async def _reconcile(self) -> SyncResult:
        try:
            fetched = await asyncio.wait_for(self.client.fetch(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            return self._fetch_failed(f"Fetch timed out after {self.timeout_seconds}s")
        except Exception as e:
            return self._fetch_failed(f"Unexpected error during fetch: {e}")

        if not fetched:
            client_error = getattr(self.client, "last_error", None)
            if client_error:
                return self._fetch_failed(client_error)

            self.notifier.display(NO_QUOTES_MESSAGE, Severity.INFO)
            return SyncResult(outcome=SyncOutcome.FAILED, error_message="Server returned no quotes")

        added = self.store.merge_remote(fetched)

        if added > 0:
            self.store.save()
            self.notifier.display(SYNCED_MESSAGE, Severity.SUCCESS)
            await self._notify_refresh()
            outcome = SyncOutcome.SYNCED
        else:
            self.notifier.display(UP_TO_DATE_MESSAGE, Severity.INFO)
            outcome = SyncOutcome.UP_TO_DATE

        return SyncResult(outcome=outcome, fetched=len(fetched), added=added)

    def _fetch_failed(self, error_message: str) -> SyncResult:
        self.logger.warning("Failed to fetch from server", error=error_message)
        self.notifier.display(CONNECT_FAILED_MESSAGE, Severity.ERROR)
        return SyncResult(outcome=SyncOutcome.FAILED, error_message=error_message)

    async def _notify_refresh(self) -> None:
        for callback in list(self._refresh_listeners):
            try:
                outcome = callback()
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                self.logger.error("Refresh listener failed", listener=repr(callback), error=str(e))

    def push(self, record: Record) -> Optional[asyncio.Task]:
        """Send a new local quote to the server without waiting for the outcome.

        The returned task resolves to True if the server accepted the quote.
        The store is never modified based on the result.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.warning("No running event loop, skipping server push")
            self.notifier.display(PUSH_FAILED_MESSAGE, Severity.ERROR)
            return None

        task = loop.create_task(self._push(record))
        self._pending_pushes.add(task)
        task.add_done_callback(self._pending_pushes.discard)
        return task

    async def _push(self, record: Record) -> bool:
        try:
            accepted = await asyncio.wait_for(self.client.create(record), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            self.logger.warning("Push timed out", timeout_seconds=self.timeout_seconds)
            accepted = False
        except Exception as e:
            self.logger.error("Push failed with unexpected error", error=str(e))
            accepted = False

        if accepted:
            self.notifier.display(PUSH_SUCCESS_MESSAGE, Severity.SUCCESS)
        else:
            self.notifier.display(PUSH_FAILED_MESSAGE, Severity.ERROR)

        return bool(accepted)

    async def wait_for_pushes(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight pushes, e.g. during shutdown."""
        pending = list(self._pending_pushes)
        if pending:
            await asyncio.wait(pending, timeout=timeout)

    def start_periodic(
        self,
        interval_seconds: Optional[float] = None,
        initial_delay_seconds: Optional[float] = None
    ) -> PeriodicSyncHandle:
        """Run ``pull`` every ``interval_seconds`` until the handle is cancelled.

        Ticks that land while a pull is in flight are dropped.
        """
        scheduling = get_settings().scheduling
        interval = interval_seconds if interval_seconds is not None else scheduling.sync_interval_seconds
        delay = initial_delay_seconds if initial_delay_seconds is not None else scheduling.initial_delay_seconds

        if self._scheduler is None:
            self._scheduler = SyncScheduler()
            self._owns_scheduler = True
        if not self._scheduler.running:
            self._scheduler.start()

        handle = self._scheduler.add_interval_job(
            self.pull,
            interval_seconds=interval,
            initial_delay_seconds=delay,
            name="Quote sync"
        )
        self._handles.append(handle)
        return handle

    def stop(self) -> None:
        """Cancel every periodic sync started by this engine."""
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()

        if self._owns_scheduler and self._scheduler is not None:
            self._scheduler.stop()
