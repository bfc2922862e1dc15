"""
Outbound synchronization of local mutations to the remote store.
"""

from .errors import SyncConfigError, SyncError, SyncFailedError
from .queue import SyncConfig, SyncOperation, SyncQueue, SyncQueueItem

__all__ = [
    "SyncQueue",
    "SyncConfig",
    "SyncOperation",
    "SyncQueueItem",
    "SyncError",
    "SyncFailedError",
    "SyncConfigError",
]
