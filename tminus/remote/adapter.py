"""
Abstract remote event store.

Rows exchanged with the store use the column layout produced by
tminus.events.mapper.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

Row = Dict[str, Any]
ChangeCallback = Callable[[List[Row]], Awaitable[None]]
Unsubscribe = Callable[[], Awaitable[None]]


class RemoteEventStore(ABC):
    """
    Abstract interface for the cloud copy of a user's events.

    All methods raise RemoteStoreError (or a subclass) on failure.

    Attributes:
        logger: Logger instance for remote store events
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @abstractmethod
    async def upsert_events(self, rows: Sequence[Row]) -> None:
        """
        Insert or replace rows by id.

        Args:
            rows: Rows to write; an empty sequence is a no-op.
        """
        pass

    @abstractmethod
    async def load_events(self, owner_id: str) -> List[Row]:
        """
        Load every row owned by `owner_id`.

        Returns:
            Rows ordered ascending by target_date.
        """
        pass

    @abstractmethod
    async def delete_event(self, event_id: str) -> None:
        """Delete one row by id. Deleting a missing row is not an error."""
        pass

    @abstractmethod
    async def subscribe_to_changes(self, owner_id: str, callback: ChangeCallback) -> Unsubscribe:
        """
        Watch an owner's rows.

        Args:
            owner_id: Owner whose rows are watched.
            callback: Awaited with the owner's full, updated row list after
                every remote change.

        Returns:
            Coroutine function that cancels the subscription.
        """
        pass
