"""
Abstract local storage for the event collection and theme.

This module defines the LocalStorage abstract base class that every
on-device storage implementation inherits from.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ..events.models import Event, ThemeMode


class LocalStorage(ABC):
    """
    Abstract interface for on-device persistence.

    The event collection is stored and loaded as a whole. Saves propagate
    failures as StorageError; loads swallow failures and report "no data"
    (an empty list, or None for the theme).

    Attributes:
        logger: Logger instance for storage events
        is_connected: Storage connection status

    Example:
        >>> storage = SQLiteLocalStorage('tminus.db')
        >>> await storage.connect()
        >>> await storage.save_events(events)
        >>> events = await storage.load_events()
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize storage.

        Args:
            logger: Optional logger instance. If None, creates default logger.
        """
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._is_connected = False

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the storage and create its schema if needed.

        Raises:
            StorageConnectionError: If the storage cannot be opened
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """
        Release storage resources.

        Safe to call multiple times.
        """
        pass

    @abstractmethod
    async def save_events(self, events: Sequence[Event]) -> None:
        """
        Replace the stored event collection.

        Raises:
            StorageError: If the collection cannot be written
        """
        pass

    @abstractmethod
    async def load_events(self) -> List[Event]:
        """
        Load the stored event collection.

        Returns:
            Stored events, or an empty list when missing or corrupt
        """
        pass

    @abstractmethod
    async def save_theme(self, mode: ThemeMode) -> None:
        """
        Store the theme preference.

        Raises:
            StorageError: If the theme cannot be written
        """
        pass

    @abstractmethod
    async def load_theme(self) -> Optional[ThemeMode]:
        """
        Load the theme preference.

        Returns:
            Stored theme, or None when missing or corrupt
        """
        pass

    @abstractmethod
    async def clear(self) -> None:
        """
        Remove all stored data.

        Raises:
            StorageError: If the data cannot be removed
        """
        pass

    @property
    def is_connected(self) -> bool:
        """Check if storage is connected."""
        return self._is_connected
