"""
tminus/app.py

Tracker: application orchestrator.

Responsibilities:
1. Open local storage and, when cloud sync is configured, connect to NATS
2. Wire the EventStore with its remote store, reminders and auth identity
3. Follow the identity file, when configured, so sign-in changes reload
   the collection
4. Coordinate graceful shutdown in reverse order
"""

import logging
from typing import Awaitable, Callable, Optional

from nats.aio.client import Client as NATS

from .auth import AuthState, PollingAuthWatcher
from .common.config import AppConfig
from .notifications import Reminder, ReminderScheduler
from .remote.nats_store import NatsEventStore
from .storage.sqlite import SQLiteLocalStorage
from .store import EventStore
from .sync.queue import SyncQueue


logger = logging.getLogger(__name__)


async def log_reminder(reminder: Reminder) -> None:
    logger.info(f"Reminder: {reminder.body}")


def read_identity_file(path: str) -> Optional[str]:
    """Return the owner id stored in `path`, or None if it is missing or empty."""
    try:
        with open(path, 'r', encoding='utf-8') as fp:
            return fp.read().strip() or None
    except OSError:
        return None


class Tracker:
    """
    Countdown tracker orchestrator.

    Args:
        config: Application settings.
        on_reminder: Async callback for due reminders (default: log them).
        nats_client: NATS client to use instead of creating one.
    """

    def __init__(
        self,
        config: AppConfig,
        on_reminder: Optional[Callable[[Reminder], Awaitable[None]]] = None,
        nats_client=None
    ):
        self.config = config
        self.on_reminder = on_reminder or log_reminder
        self.nats = nats_client
        self.storage: Optional[SQLiteLocalStorage] = None
        self.remote: Optional[NatsEventStore] = None
        self.reminders: Optional[ReminderScheduler] = None
        self.auth = AuthState(config.user_id)
        self.store: Optional[EventStore] = None
        self.auth_watcher: Optional[PollingAuthWatcher] = None
        self._owns_nats = nats_client is None

    async def start(self) -> EventStore:
        """Start all components in order and return the running EventStore."""
        try:
            logger.info("Opening local storage...")
            self.storage = SQLiteLocalStorage(self.config.database_path)
            await self.storage.connect()

            if self.config.cloud_enabled:
                await self._connect_remote()
            else:
                logger.info("Cloud sync not configured, running local-only")

            self.reminders = ReminderScheduler(
                check_interval=self.config.reminder_check_interval,
                on_notify=self.on_reminder
            )

            if self.config.identity_file:
                await self.auth.set_user(read_identity_file(self.config.identity_file))

            sync_queue = None
            if self.remote:
                sync_queue = SyncQueue(self.remote, lambda: self.auth.user_id, self.config.sync)

            self.store = EventStore(
                self.storage,
                remote=self.remote,
                notifications=self.reminders,
                auth=self.auth,
                sync_queue=sync_queue,
                config=self.config.store,
                cloud_enabled=self.config.cloud_enabled,
            )
            await self.store.start()
            await self.reminders.start()

            if self.config.identity_file:
                self.auth_watcher = PollingAuthWatcher(
                    self.auth,
                    lambda: read_identity_file(self.config.identity_file),
                    interval=self.config.identity_poll_interval
                )
                await self.auth_watcher.start()

            logger.info("Tracker started")
            return self.store

        except Exception as e:
            logger.error(f"Failed to start tracker: {e}", exc_info=True)
            await self.stop()
            raise

    async def _connect_remote(self) -> None:
        """Connect to NATS; on failure continue local-only."""
        if self.nats is None:
            self.nats = NATS()
        try:
            if not self.nats.is_connected:
                logger.info(f"Connecting to NATS: {self.config.remote_url}")
                await self.nats.connect(
                    servers=[self.config.remote_url],
                    name='tminus',
                    connect_timeout=self.config.remote_timeout,
                    max_reconnect_attempts=5,
                )
        except Exception as e:
            logger.warning(f"NATS connection failed ({e}), running local-only")
            return

        self.remote = NatsEventStore(
            self.nats,
            namespace=self.config.remote_namespace,
            timeout=self.config.remote_timeout
        )

    async def stop(self) -> None:
        """Stop all components in reverse order."""
        logger.info("Shutting down tracker...")

        if self.auth_watcher:
            await self.auth_watcher.stop()
        if self.reminders:
            await self.reminders.stop()
        if self.store:
            await self.store.stop()
        if self.nats and self._owns_nats and self.nats.is_connected:
            await self.nats.close()
        if self.storage:
            await self.storage.close()

        logger.info("Tracker stopped")
