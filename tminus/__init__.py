"""
tminus - countdown event tracker.

Named countdowns with optional weekly/monthly/yearly recurrence, stored
locally and optionally synced to a remote store over NATS.
"""

from .events import Event, RecurringType, ThemeMode
from .store import EventStore, StoreConfig
from .sync import SyncConfig, SyncQueue

__version__ = "1.0.0"

__all__ = [
    "Event",
    "RecurringType",
    "ThemeMode",
    "EventStore",
    "StoreConfig",
    "SyncQueue",
    "SyncConfig",
]
