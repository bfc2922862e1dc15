"""
tminus/sync/queue.py

Debounced, coalescing, retrying outbound sync queue.

Mutations enqueue work here instead of calling the remote store directly.
Each enqueue restarts a single debounce timer; when the timer expires the
queue is drained in one cycle:

    idle -> pending (timer armed) -> draining -> idle

A drain runs queued deletes in enqueue order, then one upsert carrying the
most recent collection snapshot (earlier upserts are coalesced away). Every
remote call is retried with exponential backoff. Background failures are
logged and dropped; force_flush() and flush() surface them to their caller.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple

from ..events.mapper import can_map_to_remote, to_remote_rows
from ..events.models import Event
from ..remote.adapter import RemoteEventStore
from .errors import SyncConfigError, SyncFailedError


class SyncOperation(Enum):
    """Kinds of queued remote work."""
    UPSERT = "upsert-collection"
    DELETE = "delete-one"


@dataclass(frozen=True)
class SyncQueueItem:
    """
    One unit of queued remote work.

    Attributes:
        operation: Upsert of a collection snapshot, or delete of one id.
        events: Snapshot to upsert (UPSERT only).
        event_id: Id to delete (DELETE only).
        owner_id: Owner the snapshot belongs to, captured at enqueue (UPSERT only).
        enqueued_at: Unix timestamp of the enqueue.
    """
    operation: SyncOperation
    events: Tuple[Event, ...] = ()
    event_id: Optional[str] = None
    owner_id: Optional[str] = None
    enqueued_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class SyncConfig:
    """
    Timing and retry settings. Intervals are in seconds.

    Attributes:
        debounce_seconds: Quiet period before a drain starts.
        max_retries: Total attempts per remote call.
        retry_delay_seconds: Delay before the second attempt.
        retry_backoff_multiplier: Factor applied to the delay per attempt.
    """
    debounce_seconds: float = 2.0
    max_retries: int = 3
    retry_delay_seconds: float = 1.0
    retry_backoff_multiplier: float = 2.0

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise SyncConfigError(f"{f.name} must be a positive number, got {value!r}")
        if int(self.max_retries) != self.max_retries:
            raise SyncConfigError(f"max_retries must be a whole number, got {self.max_retries!r}")

    def retry_delay(self, attempt: int) -> float:
        """Delay after failed attempt number `attempt` (1-based)."""
        return self.retry_delay_seconds * self.retry_backoff_multiplier ** (attempt - 1)


class SyncQueue:
    """
    Outbound sync queue owned by one EventStore.

    Args:
        remote: Remote store receiving the writes.
        get_owner_id: Returns the authenticated owner id, or None.
        config: Timing and retry settings (default: SyncConfig()).
        logger: Optional logger.

    Must be used from inside a running asyncio event loop.
    """

    def __init__(
        self,
        remote: RemoteEventStore,
        get_owner_id: Callable[[], Optional[str]],
        config: Optional[SyncConfig] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.remote = remote
        self.get_owner_id = get_owner_id
        self.config = config or SyncConfig()
        self.logger = logger or logging.getLogger(f"{__name__}.SyncQueue")
        self._queue: List[SyncQueueItem] = []
        self._timer: Optional[asyncio.TimerHandle] = None
        self._syncing = False
        self._drain_task: Optional[asyncio.Task] = None

    def configure(self, **overrides) -> SyncConfig:
        """
        Merge new settings into the current configuration.

        Raises:
            SyncConfigError: On unknown options or invalid values.
        """
        try:
            self.config = replace(self.config, **overrides)
        except TypeError as e:
            raise SyncConfigError(str(e)) from e
        self.logger.debug(f"Sync config updated: {self.config}")
        return self.config

    # ========================================================================
    # Enqueueing
    # ========================================================================

    def enqueue_sync(self, events: Iterable[Event]) -> None:
        """
        Queue an upsert of the full collection, replacing any queued upsert.

        The snapshot is sent under the owner signed in now, even if the
        identity changes before the drain. Restarts the debounce timer.
        """
        snapshot = tuple(events)
        self._queue = [item for item in self._queue if item.operation != SyncOperation.UPSERT]
        self._queue.append(
            SyncQueueItem(SyncOperation.UPSERT, events=snapshot, owner_id=self.get_owner_id())
        )
        self.logger.debug(f"Queued sync of {len(snapshot)} events")
        self._restart_timer()

    def enqueue_delete(self, event_id: str) -> None:
        """Queue a remote delete. Restarts the debounce timer."""
        self._queue.append(SyncQueueItem(SyncOperation.DELETE, event_id=event_id))
        self.logger.debug(f"Queued delete of {event_id}")
        self._restart_timer()

    async def force_flush(self, events: Iterable[Event]) -> None:
        """
        Upsert `events` now, discarding everything queued.

        Raises:
            SyncFailedError: If every attempt fails.
        """
        self._cancel_timer()
        self._queue.clear()
        snapshot = tuple(events)
        owner_id = self.get_owner_id()
        self.logger.info(f"Force syncing {len(snapshot)} events")
        await self._with_retry(
            SyncOperation.UPSERT, lambda: self._send_upsert(snapshot, owner_id)
        )

    async def flush(self) -> None:
        """
        Drain queued work now instead of waiting for the debounce timer.

        Queued deletes run in order, then the latest upsert, exactly as a
        timed drain would. A drain already in flight is awaited first.

        Raises:
            SyncFailedError: The first operation that exhausted its retries.
                The remaining operations are still attempted.
        """
        await self.wait_idle()
        self._cancel_timer()
        if not self._queue:
            return
        await self._drain(raise_failures=True)

    # ========================================================================
    # State
    # ========================================================================

    def queue_size(self) -> int:
        return len(self._queue)

    def is_syncing(self) -> bool:
        return self._syncing

    @property
    def has_pending_timer(self) -> bool:
        """True while a debounce timer is armed."""
        return self._timer is not None

    @property
    def pending(self) -> Tuple[SyncQueueItem, ...]:
        """Snapshot of queued items."""
        return tuple(self._queue)

    def reset(self) -> None:
        """
        Cancel the timer and drop all queued work.

        An in-flight drain is not interrupted. Safe to call repeatedly.
        """
        self._cancel_timer()
        dropped = len(self._queue)
        self._queue.clear()
        self._syncing = False
        if dropped:
            self.logger.info(f"Sync queue reset, dropped {dropped} pending operations")

    async def wait_idle(self) -> None:
        """Wait for the in-flight drain, if any, to finish."""
        task = self._drain_task
        if task and not task.done():
            await asyncio.shield(task)

    # ========================================================================
    # Draining
    # ========================================================================

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _restart_timer(self) -> None:
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.config.debounce_seconds, self._on_debounce_elapsed)

    def _on_debounce_elapsed(self) -> None:
        self._timer = None
        if self._syncing:
            # The running drain re-arms the timer when it finishes
            self.logger.debug("Drain already running, deferring")
            return
        if not self._queue:
            return
        self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self, raise_failures: bool = False) -> None:
        """
        Run one drain cycle over a snapshot of the queue.

        Failed operations are logged and dropped. With raise_failures the
        first SyncFailedError is raised once the cycle is complete.
        """
        self._syncing = True
        failures: List[SyncFailedError] = []
        try:
            items, self._queue = self._queue, []
            deletes = [item for item in items if item.operation == SyncOperation.DELETE]
            upserts = [item for item in items if item.operation == SyncOperation.UPSERT]
            self.logger.debug(f"Draining {len(deletes)} deletes, {len(upserts)} upserts")

            for item in deletes:
                try:
                    await self._with_retry(
                        SyncOperation.DELETE,
                        lambda event_id=item.event_id: self._send_delete(event_id)
                    )
                except SyncFailedError as e:
                    self.logger.warning(f"Dropped remote delete of {item.event_id}")
                    failures.append(e)

            if upserts:
                latest = upserts[-1]
                try:
                    await self._with_retry(
                        SyncOperation.UPSERT,
                        lambda: self._send_upsert(latest.events, latest.owner_id)
                    )
                except SyncFailedError as e:
                    self.logger.warning(f"Dropped sync of {len(latest.events)} events")
                    failures.append(e)
        except Exception as e:
            self.logger.exception(f"Error in sync drain: {e}")
        finally:
            self._syncing = False
            if self._queue and self._timer is None:
                self._restart_timer()

        if failures and raise_failures:
            raise failures[0]

    async def _with_retry(
        self,
        operation: SyncOperation,
        call: Callable[[], Awaitable[None]]
    ) -> None:
        """
        Await `call`, retrying with exponential backoff.

        Raises:
            SyncFailedError: After max_retries failed attempts.
        """
        attempt = 1
        while True:
            try:
                await call()
                return
            except Exception as e:
                if attempt < self.config.max_retries:
                    delay = self.config.retry_delay(attempt)
                    self.logger.warning(
                        f"{operation.value} attempt {attempt} failed ({e}), retrying in {delay:.2f}s"
                    )
                    await asyncio.sleep(delay)
                    attempt += 1
                    continue
                self.logger.error(f"{operation.value} failed after {attempt} attempts: {e}")
                raise SyncFailedError(
                    f"{operation.value} failed after {attempt} attempts: {e}",
                    operation=operation.value,
                    attempts=attempt
                ) from e

    async def _send_upsert(self, events: Tuple[Event, ...], owner_id: Optional[str]) -> None:
        if not owner_id:
            self.logger.info("No authenticated owner, skipping sync")
            return

        mappable = [event for event in events if can_map_to_remote(event)]
        if len(mappable) != len(events):
            self.logger.warning(f"Skipping {len(events) - len(mappable)} events that cannot be synced")
        await self.remote.upsert_events(to_remote_rows(mappable, owner_id))

    async def _send_delete(self, event_id: str) -> None:
        await self.remote.delete_event(event_id)
