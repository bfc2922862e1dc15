"""
tminus/events/mapper.py

Translation between Event objects and remote store rows.

Rows use snake_case column names and ISO-8601 timestamp strings. Only None
maps to a null column (and back), so empty strings and empty tuples survive
a round trip. The owner id passed to to_remote_row always replaces
whatever user_id the event carries.
"""

from typing import Any, Dict, Iterable, List, Mapping

from .models import Event, RecurringType, format_timestamp, parse_timestamp


ROW_FIELDS = (
    "id",
    "name",
    "target_date",
    "created_at",
    "category_id",
    "is_recurring",
    "recurring_type",
    "notification_enabled",
    "notification_times",
    "user_id",
)


def to_remote_row(event: Event, owner_id: str) -> Dict[str, Any]:
    """
    Convert an event to a remote row owned by `owner_id`.

    Args:
        event: Event to convert.
        owner_id: Authenticated owner; overrides event.user_id.

    Returns:
        Row dictionary with every column of ROW_FIELDS.
    """
    recurring_type = RecurringType.parse(event.recurring_type)
    return {
        "id": event.id,
        "name": event.name,
        "target_date": format_timestamp(event.target_date),
        "created_at": format_timestamp(event.created_at),
        "category_id": event.category_id,
        "is_recurring": event.is_recurring,
        "recurring_type": recurring_type.value if recurring_type else None,
        "notification_enabled": event.notification_enabled,
        "notification_times": (
            list(event.notification_times) if event.notification_times is not None else None
        ),
        "user_id": owner_id,
    }


def from_remote_row(row: Mapping[str, Any]) -> Event:
    """
    Convert a remote row to an Event.

    Raises:
        KeyError: If a required column is missing.
        ValueError: If a timestamp column cannot be parsed.
    """
    times = row.get("notification_times")
    return Event(
        id=str(row["id"]),
        name=row["name"],
        target_date=parse_timestamp(row["target_date"]),
        created_at=parse_timestamp(row["created_at"]),
        category_id=row.get("category_id"),
        is_recurring=bool(row.get("is_recurring", False)),
        recurring_type=RecurringType.parse(row.get("recurring_type")),
        notification_enabled=bool(row.get("notification_enabled", False)),
        notification_times=tuple(int(t) for t in times) if times is not None else None,
        user_id=row.get("user_id"),
    )


def to_remote_rows(events: Iterable[Event], owner_id: str) -> List[Dict[str, Any]]:
    return [to_remote_row(event, owner_id) for event in events]


def from_remote_rows(rows: Iterable[Mapping[str, Any]]) -> List[Event]:
    return [from_remote_row(row) for row in rows]


def _non_empty(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def can_map_to_remote(event: Any) -> bool:
    """
    Check that an event has everything a remote row requires.

    Returns:
        True when id, name, target_date and created_at are present and the
        flag fields are real booleans.
    """
    if not isinstance(event, Event):
        return False
    if not all(_non_empty(getattr(event, name)) for name in ("id", "name", "target_date", "created_at")):
        return False
    return isinstance(event.is_recurring, bool) and isinstance(event.notification_enabled, bool)


def can_map_from_remote(row: Any) -> bool:
    """
    Check that a remote row can be converted and belongs to an owner.

    Returns:
        True when the row is a mapping with non-empty id, name, target_date,
        created_at and user_id, parseable timestamps and boolean flags.
    """
    if not isinstance(row, Mapping):
        return False
    if not all(_non_empty(row.get(name)) for name in ("id", "name", "target_date", "created_at", "user_id")):
        return False
    for name in ("is_recurring", "notification_enabled"):
        if name in row and not isinstance(row[name], bool):
            return False
    try:
        parse_timestamp(row["target_date"])
        parse_timestamp(row["created_at"])
    except (TypeError, ValueError):
        return False
    return True
