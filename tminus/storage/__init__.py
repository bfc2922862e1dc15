"""
On-device persistence for the event collection and theme preference.
"""

from .adapter import LocalStorage
from .errors import StorageConnectionError, StorageError
from .sqlite import SQLiteLocalStorage

__all__ = [
    "LocalStorage",
    "SQLiteLocalStorage",
    "StorageError",
    "StorageConnectionError",
]
