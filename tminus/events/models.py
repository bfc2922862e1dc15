"""
tminus/events/models.py

Event model and the local (camelCase JSON) serialization format.

Provides:
- Event dataclass, one instance per occurrence
- RecurringType and ThemeMode enums
- Identifier generation and timestamp helpers
"""

import random
import string
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class RecurringType(Enum):
    """How often a recurring event repeats."""
    YEARLY = "yearly"
    MONTHLY = "monthly"
    WEEKLY = "weekly"

    @classmethod
    def parse(cls, value: Any) -> Optional["RecurringType"]:
        """
        Coerce a stored value into a RecurringType.

        Returns:
            The matching member, or None for missing or unknown values.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return None
        return None


class ThemeMode(Enum):
    """Display theme persisted alongside the events."""
    LIGHT = "light"
    DARK = "dark"


_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_id() -> str:
    """Generate an occurrence id: epoch milliseconds plus 9 random base36 chars."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{int(time.time() * 1000)}-{suffix}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO-8601 timestamp (or pass through a datetime).

    Naive values are treated as UTC. A trailing "Z" is accepted.

    Raises:
        ValueError: If the value is empty or not a timestamp.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"Not a timestamp: {value!r}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


@dataclass(frozen=True)
class Event:
    """
    A single countdown occurrence.

    Recurring events are materialized one occurrence at a time: when an
    occurrence elapses it is replaced by a new Event with its own id and
    created_at (see tminus.events.recurrence).

    Attributes:
        id: Opaque unique identifier.
        name: Display name.
        target_date: When the countdown ends (timezone-aware).
        created_at: When this occurrence was created (timezone-aware).
        category_id: Optional category reference.
        is_recurring: Whether a new occurrence follows this one.
        recurring_type: Repeat interval, meaningful only when is_recurring.
        notification_enabled: Whether reminders are wanted.
        notification_times: Minutes-before-target offsets for reminders.
        user_id: Owner identifier, set when the event has been synced.
    """

    id: str
    name: str
    target_date: datetime
    created_at: datetime = field(default_factory=utcnow)
    category_id: Optional[str] = None
    is_recurring: bool = False
    recurring_type: Optional[RecurringType] = None
    notification_enabled: bool = False
    notification_times: Optional[Tuple[int, ...]] = None
    user_id: Optional[str] = None

    def __post_init__(self):
        # Naive datetimes are UTC so aware and naive events stay comparable
        for name in ("target_date", "created_at"):
            value = getattr(self, name)
            if isinstance(value, datetime) and value.tzinfo is None:
                object.__setattr__(self, name, value.replace(tzinfo=timezone.utc))

    @classmethod
    def create(cls, name: str, target_date: datetime, **kwargs) -> "Event":
        """Build a new event with a fresh id and created_at of now."""
        return cls(id=generate_id(), name=name, target_date=target_date,
                   created_at=utcnow(), **kwargs)

    def with_changes(self, **changes) -> "Event":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the local storage JSON shape.

        Optional fields that are None are omitted.

        Returns:
            Dictionary with camelCase keys and ISO timestamps.
        """
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "targetDate": format_timestamp(self.target_date),
            "createdAt": format_timestamp(self.created_at),
            "isRecurring": self.is_recurring,
            "notificationEnabled": self.notification_enabled,
        }
        if self.category_id is not None:
            data["categoryId"] = self.category_id
        if self.recurring_type is not None:
            data["recurringType"] = self.recurring_type.value
        if self.notification_times is not None:
            data["notificationTimes"] = list(self.notification_times)
        if self.user_id is not None:
            data["userId"] = self.user_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        """
        Create an Event from the local storage JSON shape.

        Args:
            data: Dictionary produced by to_dict().

        Returns:
            Event instance.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If a timestamp cannot be parsed.
        """
        times = data.get("notificationTimes")
        return cls(
            id=str(data["id"]),
            name=data["name"],
            target_date=parse_timestamp(data["targetDate"]),
            created_at=parse_timestamp(data["createdAt"]) if data.get("createdAt") else utcnow(),
            category_id=data.get("categoryId"),
            is_recurring=bool(data.get("isRecurring", False)),
            recurring_type=RecurringType.parse(data.get("recurringType")),
            notification_enabled=bool(data.get("notificationEnabled", False)),
            notification_times=tuple(int(t) for t in times) if times is not None else None,
            user_id=data.get("userId"),
        )


def sort_events(events) -> list:
    """Return events ordered ascending by target date."""
    return sorted(events, key=lambda e: e.target_date)
