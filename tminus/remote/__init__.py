"""
Cloud copy of the user's events.
"""

from .adapter import RemoteEventStore
from .errors import RemoteResponseError, RemoteStoreError, RemoteTimeoutError
from .nats_store import NatsEventStore
from .subjects import Subjects

__all__ = [
    "RemoteEventStore",
    "NatsEventStore",
    "Subjects",
    "RemoteStoreError",
    "RemoteTimeoutError",
    "RemoteResponseError",
]
