"""
SQLite implementation of LocalStorage.

Blobs live in a key-value table accessed through SQLAlchemy's async ORM
with the aiosqlite driver. The schema is created on connect().
"""

import json
import logging
import pathlib
import time
import urllib.parse
from contextlib import asynccontextmanager
from typing import Any, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ..events.models import Event, ThemeMode
from .adapter import LocalStorage
from .errors import StorageConnectionError, StorageError
from .models import Base, KVEntry


EVENTS_KEY = '@countdown_events'
THEME_KEY = '@countdown_theme'


def database_url_for(path: str) -> str:
    """
    Convert a file path to an aiosqlite URL.

    Args:
        path: SQLAlchemy URL, ':memory:', or a file path.

    Returns:
        SQLAlchemy URL string.
    """
    if path.startswith('sqlite+'):
        return path
    if path == ':memory:':
        return 'sqlite+aiosqlite:///:memory:'

    path_obj = pathlib.Path(path)
    if not path_obj.is_absolute():
        path_obj = path_obj.resolve()
    encoded_path = urllib.parse.quote(path_obj.as_posix(), safe='/:')
    return f'sqlite+aiosqlite:///{encoded_path}'


class SQLiteLocalStorage(LocalStorage):
    """
    Local storage backed by an SQLite key-value table.

    Attributes:
        database_url: SQLAlchemy database URL
        engine: SQLAlchemy async engine (created on connect)

    Example:
        storage = SQLiteLocalStorage('tminus.db')
        await storage.connect()
        await storage.save_theme(ThemeMode.DARK)
        await storage.close()
    """

    def __init__(self, path: str = 'tminus.db', logger: Optional[logging.Logger] = None):
        super().__init__(logger)
        self.database_url = database_url_for(path)
        self.engine = None
        self.session_factory = None

    async def connect(self) -> None:
        """
        Create the engine and ensure the schema exists.

        Raises:
            StorageConnectionError: If the database cannot be opened
        """
        if self._is_connected:
            self.logger.warning(f"Storage already connected: {self.database_url}")
            return

        self.engine = create_async_engine(self.database_url, echo=False)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            await self.engine.dispose()
            self.engine = None
            raise StorageConnectionError(f"Cannot open {self.database_url}: {e}") from e

        self._is_connected = True
        self.logger.info(f"Local storage connected: {self.database_url}")

    async def close(self) -> None:
        if not self._is_connected:
            self.logger.debug('Storage already closed or never connected')
            return

        try:
            await self.engine.dispose()
            self.logger.info('Local storage closed')
        finally:
            self._is_connected = False
            self.engine = None

    @asynccontextmanager
    async def _get_session(self):
        """
        Get an async session that commits on success and rolls back on error.

        Yields:
            AsyncSession: Database session
        """
        if not self._is_connected:
            raise StorageConnectionError('Storage is not connected')

        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    # ========================================================================
    # Key-Value Primitives
    # ========================================================================

    async def _set(self, key: str, value: Any) -> None:
        try:
            value_json = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key} is not JSON-serializable: {e}") from e

        now = int(time.time())
        stmt = sqlite_insert(KVEntry).values(key=key, value_json=value_json, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=['key'],
            set_={'value_json': value_json, 'updated_at': now},
        )

        try:
            async with self._get_session() as session:
                await session.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

    async def _get(self, key: str) -> Any:
        """Return the stored value, or None when the key is absent."""
        async with self._get_session() as session:
            result = await session.execute(select(KVEntry).where(KVEntry.key == key))
            entry = result.scalar_one_or_none()
            if entry is None:
                return None
            return entry.get_value()

    # ========================================================================
    # Events
    # ========================================================================

    async def save_events(self, events: Sequence[Event]) -> None:
        await self._set(EVENTS_KEY, [event.to_dict() for event in events])
        self.logger.debug(f"Saved {len(events)} events")

    async def load_events(self) -> List[Event]:
        try:
            data = await self._get(EVENTS_KEY)
            if not data:
                return []
            return [Event.from_dict(item) for item in data]
        except Exception as e:
            self.logger.error(f"Failed to load events, treating as empty: {e}")
            return []

    # ========================================================================
    # Theme
    # ========================================================================

    async def save_theme(self, mode: ThemeMode) -> None:
        await self._set(THEME_KEY, ThemeMode(mode).value)

    async def load_theme(self) -> Optional[ThemeMode]:
        try:
            value = await self._get(THEME_KEY)
            return ThemeMode(value) if value is not None else None
        except Exception as e:
            self.logger.error(f"Failed to load theme: {e}")
            return None

    async def clear(self) -> None:
        try:
            async with self._get_session() as session:
                await session.execute(
                    delete(KVEntry).where(KVEntry.key.in_([EVENTS_KEY, THEME_KEY]))
                )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to clear storage: {e}") from e
        self.logger.info('Local storage cleared')
