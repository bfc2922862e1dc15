"""
tminus/store.py

EventStore: owner of the authoritative event collection.

Orchestrates load -> subscribe -> mutate -> persist/sync:

- Load on start and whenever the authenticated identity changes, cloud
  first with local storage as the backstop.
- Subscribe to remote changes while cloud-enabled and authenticated.
- Apply mutations to the in-memory collection (kept sorted by target date),
  then save locally and, when syncing, enqueue the collection remotely.
- Replace elapsed recurring occurrences on start and every sweep interval.

Everything runs on one asyncio event loop; mutations are serialized by it.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .auth import AuthState
from .events.mapper import can_map_from_remote, from_remote_row
from .events.models import Event, sort_events
from .events.recurrence import process_collection
from .notifications import DEFAULT_NOTIFICATION_TIMES, NotificationScheduler
from .remote.adapter import RemoteEventStore, Row, Unsubscribe
from .storage.adapter import LocalStorage
from .sync.queue import SyncQueue

StoreListener = Callable[["EventStore"], None]


@dataclass(frozen=True)
class StoreConfig:
    """
    Coordinator timing settings. Intervals are in seconds.

    Attributes:
        sweep_interval_seconds: Time between recurrence sweeps.
        syncing_cooldown_seconds: How long is_syncing stays raised after an
            upsert is enqueued.
        default_notification_times: Reminder offsets (minutes) for events
            that enable notifications without choosing times.
    """
    sweep_interval_seconds: float = 3600.0
    syncing_cooldown_seconds: float = 2.5
    default_notification_times: Tuple[int, ...] = DEFAULT_NOTIFICATION_TIMES


class EventStore:
    """
    Coordinates local storage, remote sync, recurrence and reminders.

    Args:
        local: On-device storage (always used).
        remote: Remote store, or None when cloud sync is unavailable.
        notifications: Reminder scheduler, or None to skip reminders.
        auth: Authenticated identity (default: a signed-out AuthState).
        sync_queue: Outbound queue (default: built from `remote`).
        config: Timing settings (default: StoreConfig()).
        cloud_enabled: Whether cloud sync is configured (default: remote
            is not None).

    Example:
        store = EventStore(SQLiteLocalStorage('tminus.db'))
        await store.start()
        await store.add_event(Event.create("Trip", target))
        await store.stop()
    """

    def __init__(
        self,
        local: LocalStorage,
        remote: Optional[RemoteEventStore] = None,
        notifications: Optional[NotificationScheduler] = None,
        auth: Optional[AuthState] = None,
        sync_queue: Optional[SyncQueue] = None,
        config: Optional[StoreConfig] = None,
        cloud_enabled: Optional[bool] = None
    ):
        self.local = local
        self.remote = remote
        self.notifications = notifications
        self.auth = auth or AuthState()
        self.config = config or StoreConfig()
        self._cloud_enabled = (remote is not None) if cloud_enabled is None else cloud_enabled
        if sync_queue is None and remote is not None:
            sync_queue = SyncQueue(remote, lambda: self.auth.user_id)
        self.sync_queue = sync_queue

        self.logger = logging.getLogger(f"{__name__}.EventStore")
        self.running = False
        self._events: List[Event] = []
        self._is_loading = True
        self._is_syncing = False
        self._listeners: List[StoreListener] = []
        self._unsubscribe: Optional[Unsubscribe] = None
        self._remove_auth_listener: Optional[Callable[[], None]] = None
        self._sweep_task: Optional[asyncio.Task] = None
        self._cooldown: Optional[asyncio.TimerHandle] = None

    # ========================================================================
    # Observables
    # ========================================================================

    @property
    def events(self) -> Tuple[Event, ...]:
        """Snapshot of the collection, sorted by target date."""
        return tuple(self._events)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_syncing(self) -> bool:
        """UI hint raised for a short cooldown after each enqueued upsert."""
        return self._is_syncing

    @property
    def is_cloud_enabled(self) -> bool:
        return self._cloud_enabled and self.remote is not None

    @property
    def is_authenticated(self) -> bool:
        return self.auth.is_authenticated

    @property
    def current_user_id(self) -> Optional[str]:
        return self.auth.user_id

    @property
    def _cloud_active(self) -> bool:
        return self.is_cloud_enabled and self.auth.is_authenticated and self.sync_queue is not None

    def add_listener(self, listener: StoreListener) -> None:
        """Register a callback invoked with the store after every state change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: StoreListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                self.logger.exception(f"Error in store listener: {e}")

    def get_event(self, event_id: str) -> Optional[Event]:
        for event in self._events:
            if event.id == event_id:
                return event
        return None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def start(self) -> None:
        """
        Load the collection, subscribe to remote changes, run the first
        recurrence sweep and start the periodic sweep.
        """
        if self.running:
            self.logger.warning("EventStore already started")
            return

        self.running = True
        self._remove_auth_listener = self.auth.add_listener(self._on_auth_changed)
        await self.load()
        await self._subscribe()
        await self.process_recurring()
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        self.logger.info(
            f"EventStore started ({len(self._events)} events, "
            f"cloud: {'on' if self.is_cloud_enabled else 'off'}, "
            f"user: {self.auth.user_id or '-'})"
        )

    async def stop(self) -> None:
        """
        Tear down: stop sweeping, unsubscribe and reset the sync queue.

        Queued remote writes are dropped; call flush_sync() first to
        deliver them. A drain already in flight is awaited.
        """
        if not self.running:
            return

        self.running = False
        if self._remove_auth_listener:
            self._remove_auth_listener()
            self._remove_auth_listener = None

        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

        await self._unsubscribe_remote()
        self._cancel_cooldown()
        self._is_syncing = False
        if self.sync_queue:
            self.sync_queue.reset()
            await self.sync_queue.wait_idle()
        self.logger.info("EventStore stopped")

    # ========================================================================
    # Loading
    # ========================================================================

    async def load(self) -> None:
        """Load the collection (cloud first when possible) and reschedule reminders."""
        self._is_loading = True
        self._notify()
        try:
            events = await self._load_events()
        finally:
            self._is_loading = False

        self._events = sort_events(events)
        await self._reschedule_all()
        self.logger.info(f"Loaded {len(self._events)} events")
        self._notify()

    async def _load_events(self) -> List[Event]:
        if not self._cloud_active:
            return await self.local.load_events()

        owner_id = self.auth.user_id
        try:
            events = self._events_from_rows(await self.remote.load_events(owner_id))
        except Exception as e:
            self.logger.error(f"Remote load failed, using local storage: {e}")
            return await self.local.load_events()

        if events:
            await self._mirror_locally(events)
            return events

        local_events = await self.local.load_events()
        if local_events:
            self.logger.info(f"Remote store empty, seeding it with {len(local_events)} local events")
            self.sync_queue.enqueue_sync(local_events)
        return local_events

    def _events_from_rows(self, rows: Iterable[Row]) -> List[Event]:
        events = []
        for row in rows:
            if can_map_from_remote(row):
                events.append(from_remote_row(row))
            else:
                self.logger.warning(f"Skipping malformed remote row: {row!r}")
        return sort_events(events)

    async def _mirror_locally(self, events: Sequence[Event]) -> None:
        try:
            await self.local.save_events(events)
        except Exception as e:
            self.logger.error(f"Failed to mirror remote events locally: {e}")

    # ========================================================================
    # Remote Subscription
    # ========================================================================

    async def _subscribe(self) -> None:
        if not self._cloud_active or self._unsubscribe is not None:
            return
        try:
            self._unsubscribe = await self.remote.subscribe_to_changes(
                self.auth.user_id, self._on_remote_change
            )
        except Exception as e:
            self.logger.error(f"Failed to subscribe to remote changes: {e}")

    async def _unsubscribe_remote(self) -> None:
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is None:
            return
        try:
            await unsubscribe()
        except Exception as e:
            self.logger.warning(f"Error unsubscribing from remote changes: {e}")

    async def _on_remote_change(self, rows: List[Row]) -> None:
        """Adopt a pushed collection and mirror it locally."""
        if not self.running:
            return
        events = self._events_from_rows(rows)
        self.logger.debug(f"Remote change: {len(events)} events")
        self._events = events
        self._notify()
        await self._mirror_locally(events)

    async def _on_auth_changed(self, user_id: Optional[str]) -> None:
        """Reload and resubscribe for the new identity."""
        if not self.running:
            return
        await self._unsubscribe_remote()
        if self.sync_queue:
            # Queued writes were made for the previous identity
            self.sync_queue.reset()
        await self.load()
        await self._subscribe()

    # ========================================================================
    # Mutations
    # ========================================================================

    async def add_event(self, event: Event) -> None:
        """
        Insert an event, reschedule its reminders and persist.

        Raises:
            StorageError: If the local save fails.
        """
        self._events = sort_events([*self._events, event])
        await self._reschedule(event)
        await self._persist()

    async def update_event(self, event: Event) -> None:
        """
        Replace the event with the same id, reschedule its reminders and persist.

        Raises:
            StorageError: If the local save fails.
        """
        if self.get_event(event.id) is None:
            self.logger.warning(f"Update of unknown event {event.id}")
        self._events = sort_events([event if e.id == event.id else e for e in self._events])
        await self._reschedule(event)
        await self._persist()

    async def delete_event(self, event_id: str) -> None:
        """
        Remove an event, cancel its reminders, persist and queue a remote delete.

        Raises:
            StorageError: If the local save fails.
        """
        self._events = [e for e in self._events if e.id != event_id]
        if self.notifications:
            await self.notifications.cancel_notifications(event_id)
        if self._cloud_active:
            self.sync_queue.enqueue_delete(event_id)
        await self._persist()

    async def _persist(self) -> None:
        """Save locally, then queue a remote upsert when syncing."""
        self._notify()
        await self.local.save_events(self._events)
        if self._cloud_active:
            self.sync_queue.enqueue_sync(self._events)
            self._start_cooldown()

    def _start_cooldown(self) -> None:
        self._cancel_cooldown()
        self._is_syncing = True
        loop = asyncio.get_running_loop()
        self._cooldown = loop.call_later(self.config.syncing_cooldown_seconds, self._end_cooldown)
        self._notify()

    def _end_cooldown(self) -> None:
        self._cooldown = None
        self._is_syncing = False
        self._notify()

    def _cancel_cooldown(self) -> None:
        if self._cooldown is not None:
            self._cooldown.cancel()
            self._cooldown = None

    # ========================================================================
    # Reminders
    # ========================================================================

    async def _reschedule(self, event: Event) -> None:
        if not self.notifications:
            return
        await self.notifications.cancel_notifications(event.id)
        if event.notification_enabled:
            times = event.notification_times or self.config.default_notification_times
            await self.notifications.schedule_notifications(event, times)

    async def _reschedule_all(self) -> None:
        for event in self._events:
            await self._reschedule(event)

    # ========================================================================
    # Recurrence
    # ========================================================================

    async def process_recurring(self, now=None) -> bool:
        """
        Replace elapsed recurring occurrences with their successors.

        Args:
            now: Reference time (default: now UTC).

        Returns:
            True if the collection changed.
        """
        previous = self._events
        processed = process_collection(previous, now)
        changed = len(processed) != len(previous) or any(
            new.id != old.id for new, old in zip(processed, previous)
        )
        if not changed:
            return False

        previous_ids = {e.id for e in previous}
        current_ids = {e.id for e in processed}
        superseded = previous_ids - current_ids
        self._events = sort_events(processed)
        self.logger.info(f"Recurrence sweep replaced {len(superseded)} occurrences")

        for event_id in superseded:
            if self.notifications:
                await self.notifications.cancel_notifications(event_id)
            if self._cloud_active:
                self.sync_queue.enqueue_delete(event_id)

        for event in self._events:
            if event.id not in previous_ids:
                await self._reschedule(event)

        await self._persist()
        return True

    async def _sweep_loop(self) -> None:
        while self.running:
            try:
                await asyncio.sleep(self.config.sweep_interval_seconds)
                await self.process_recurring()
            except asyncio.CancelledError:
                self.logger.debug("Sweep loop cancelled")
                raise
            except Exception as e:
                self.logger.exception(f"Error in recurrence sweep: {e}")

    # ========================================================================
    # Critical Paths
    # ========================================================================

    async def force_sync_now(self) -> None:
        """
        Upsert the collection immediately, bypassing the debounce.

        No-op when cloud is disabled, nobody is signed in, or the collection
        is empty.

        Raises:
            SyncFailedError: If every attempt fails.
        """
        if not self._cloud_active or not self._events:
            return
        await self.sync_queue.force_flush(self._events)

    async def flush_sync(self) -> None:
        """
        Deliver queued remote work now: pending deletes in order, then the
        latest collection upsert.

        No-op when cloud is disabled or nobody is signed in.

        Raises:
            SyncFailedError: If an operation exhausts its retries.
        """
        if not self._cloud_active:
            return
        await self.sync_queue.flush()

    async def sign_out(self) -> None:
        """Deliver pending changes, then sign out even if that fails."""
        try:
            await self.flush_sync()
            await self.force_sync_now()
        except Exception as e:
            self.logger.error(f"Final sync before sign-out failed: {e}")
        await self.auth.sign_out()
