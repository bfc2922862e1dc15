"""
In-memory collaborators for EventStore and SyncQueue tests
"""
from typing import Any, Dict, List, Optional, Sequence

from tminus.events.models import Event, ThemeMode
from tminus.notifications import NotificationScheduler
from tminus.remote.adapter import RemoteEventStore
from tminus.remote.errors import RemoteStoreError
from tminus.storage.adapter import LocalStorage
from tminus.storage.errors import StorageError


class FakeRemoteStore(RemoteEventStore):
    """
    Records every call; failures can be queued per operation

    Attributes:
        rows: Rows returned by load_events (per owner when set as a dict)
        upserts: Row lists passed to upsert_events, in call order
        deletes: Ids passed to delete_event, in call order
        failures: Number of upcoming failures per operation name
    """

    def __init__(self):
        super().__init__()
        self.rows: List[Dict[str, Any]] = []
        self.upserts: List[List[Dict[str, Any]]] = []
        self.deletes: List[str] = []
        self.loads: List[str] = []
        self.failures: Dict[str, int] = {"upsert": 0, "delete": 0, "load": 0}
        self.subscribers: Dict[str, Any] = {}
        self.unsubscribed: List[str] = []
        self.calls = 0

    def _maybe_fail(self, op: str):
        self.calls += 1
        if self.failures.get(op, 0) > 0:
            self.failures[op] -= 1
            raise RemoteStoreError(f"{op} failed")

    async def upsert_events(self, rows):
        self._maybe_fail("upsert")
        self.upserts.append(list(rows))

    async def load_events(self, owner_id):
        self.loads.append(owner_id)
        self._maybe_fail("load")
        return [dict(r) for r in self.rows if r.get("user_id") == owner_id]

    async def delete_event(self, event_id):
        self._maybe_fail("delete")
        self.deletes.append(event_id)

    async def subscribe_to_changes(self, owner_id, callback):
        self.subscribers[owner_id] = callback

        async def unsubscribe():
            self.subscribers.pop(owner_id, None)
            self.unsubscribed.append(owner_id)

        return unsubscribe

    async def push(self, owner_id: str, rows: List[Dict[str, Any]]):
        """Simulate a remote change notification"""
        await self.subscribers[owner_id](rows)


class MemoryStorage(LocalStorage):
    """LocalStorage keeping everything in memory and counting saves"""

    def __init__(self, events: Optional[Sequence[Event]] = None):
        super().__init__()
        self.events: List[Event] = list(events or [])
        self.theme: Optional[ThemeMode] = None
        self.saves: List[List[Event]] = []
        self.fail_saves = False

    async def connect(self):
        self._is_connected = True

    async def close(self):
        self._is_connected = False

    async def save_events(self, events):
        if self.fail_saves:
            raise StorageError("disk full")
        self.saves.append(list(events))
        self.events = list(events)

    async def load_events(self):
        return list(self.events)

    async def save_theme(self, mode):
        self.theme = mode

    async def load_theme(self):
        return self.theme

    async def clear(self):
        self.events = []
        self.theme = None


class RecordingNotifications(NotificationScheduler):
    """NotificationScheduler that records schedule/cancel calls"""

    def __init__(self):
        self.scheduled: List[tuple] = []
        self.cancelled: List[str] = []

    async def schedule_notifications(self, event, minutes_before=(60, 1440)):
        times = tuple(minutes_before)
        self.scheduled.append((event.id, times))
        return [f"{event.id}:{m}" for m in times]

    async def cancel_notifications(self, event_id):
        self.cancelled.append(event_id)

    def scheduled_ids(self) -> List[str]:
        return [event_id for event_id, _ in self.scheduled]
