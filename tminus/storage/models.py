"""
SQLAlchemy ORM models for local storage.

The app keeps whole blobs (the event collection, the theme) under fixed
keys, so the schema is a single key-value table.

Usage:
    engine = create_async_engine('sqlite+aiosqlite:///tminus.db')
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
"""

import json
import time
from typing import Any

from sqlalchemy import Integer, String, Text
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all ORM models."""
    pass


class KVEntry(Base):
    """
    One stored blob.

    Values are JSON-serialized. Timestamps are Unix epoch seconds.
    """
    __tablename__ = 'kv_storage'

    key: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        comment="Storage key (e.g., '@countdown_events')"
    )

    value_json: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="JSON-serialized value"
    )

    updated_at: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=lambda: int(time.time()),
        comment="Last write timestamp (Unix epoch)"
    )

    def __repr__(self) -> str:
        return f"<KVEntry(key={self.key})>"

    def get_value(self) -> Any:
        """
        Deserialize and return the stored value.

        Raises:
            json.JSONDecodeError: If the stored JSON is corrupt.
        """
        return json.loads(self.value_json)
