"""
tminus/events/recurrence.py

Recurring-event materialization.

When an occurrence of a recurring event has elapsed, it is replaced by the
next occurrence: a new Event with its own id whose target date is advanced
by whole units (week, month or year) from the elapsed one. Month and year
steps keep the original day of month, clamped to the length of the target
month (Jan 31 -> Feb 28 -> Mar 31).

Every function here is pure. `now` defaults to the current UTC time and is
accepted as an argument so callers and tests can pin the clock. Malformed
recurring configuration never raises; such events are left as they are.
"""

import calendar
import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Union

from .models import Event, RecurringType, generate_id


logger = logging.getLogger(__name__)

DAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']


def _as_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    return _as_aware(now)


def _add_months(dt: datetime, months: int) -> datetime:
    """Advance by whole months, clamping the day to the target month."""
    total = dt.month - 1 + months
    year = dt.year + total // 12
    month = total % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def _step(anchor: datetime, recurring_type: RecurringType, units: int) -> datetime:
    if recurring_type == RecurringType.WEEKLY:
        return anchor + timedelta(weeks=units)
    if recurring_type == RecurringType.MONTHLY:
        return _add_months(anchor, units)
    return _add_months(anchor, 12 * units)


def _first_guess(anchor: datetime, recurring_type: RecurringType, now: datetime) -> int:
    """Lower bound on the number of units needed to pass `now`."""
    if now <= anchor:
        return 1
    if recurring_type == RecurringType.WEEKLY:
        return max(1, (now - anchor) // timedelta(weeks=1))
    if recurring_type == RecurringType.MONTHLY:
        months = (now.year - anchor.year) * 12 + (now.month - anchor.month)
        return max(1, months - 1)
    return max(1, now.year - anchor.year - 1)


def should_recreate(event: Event, now: Optional[datetime] = None) -> bool:
    """
    Check whether an event is an elapsed occurrence of a recurring series.

    Args:
        event: Event to inspect.
        now: Reference time (default: now UTC).

    Returns:
        True iff the event is recurring, has a valid recurring type and its
        target date is before `now`.
    """
    if not event.is_recurring:
        return False
    if RecurringType.parse(event.recurring_type) is None:
        return False
    try:
        return _as_aware(event.target_date) < _now(now)
    except (TypeError, AttributeError):
        return False


def next_occurrence_date(
    last_date: datetime,
    recurring_type: Union[RecurringType, str],
    now: Optional[datetime] = None
) -> datetime:
    """
    Calculate the target date of the occurrence following `last_date`.

    The result is `last_date` advanced by the smallest whole number of
    units (at least one) that lands strictly after `now`. Time of day and
    tzinfo of `last_date` are preserved.

    Args:
        last_date: Target date of the elapsed occurrence.
        recurring_type: Weekly, monthly or yearly.
        now: Reference time (default: now UTC).

    Returns:
        Next target date.

    Raises:
        ValueError: If recurring_type is not a valid type.
    """
    kind = RecurringType.parse(recurring_type)
    if kind is None:
        raise ValueError(f"Invalid recurring type: {recurring_type!r}")

    anchor = _as_aware(last_date)
    now = _now(now)

    units = _first_guess(anchor, kind, now)
    candidate = _step(anchor, kind, units)
    while candidate <= now:
        units += 1
        candidate = _step(anchor, kind, units)
    return candidate


def create_next_occurrence(event: Event, now: Optional[datetime] = None) -> Optional[Event]:
    """
    Build the occurrence that replaces an elapsed recurring event.

    Args:
        event: The elapsed occurrence.
        now: Reference time (default: now UTC).

    Returns:
        New Event with a fresh id and created_at, every other field copied,
        or None if the event is not an elapsed recurring occurrence.
    """
    now = _now(now)
    if not should_recreate(event, now):
        return None

    kind = RecurringType.parse(event.recurring_type)
    next_date = next_occurrence_date(event.target_date, kind, now)
    logger.debug(f"Recreating {event.id} ({event.name}) for {next_date.isoformat()}")
    return event.with_changes(
        id=generate_id(),
        target_date=next_date,
        created_at=now,
        recurring_type=kind,
    )


def process_collection(events: Iterable[Event], now: Optional[datetime] = None) -> List[Event]:
    """
    Replace every elapsed recurring occurrence with its successor.

    Output has the same length and order as the input. Events that are not
    elapsed recurring occurrences are returned unchanged.
    """
    now = _now(now)
    result = []
    for event in events:
        replacement = create_next_occurrence(event, now)
        result.append(replacement if replacement is not None else event)
    return result


def upcoming_occurrences(
    event: Event,
    count: int = 5,
    now: Optional[datetime] = None
) -> List[datetime]:
    """
    List the next `count` dates of the series after the later of the
    event's own target date and `now`.

    Returns:
        Dates in ascending order, or an empty list for non-recurring events.
    """
    kind = RecurringType.parse(event.recurring_type)
    if not event.is_recurring or kind is None or count <= 0:
        return []

    anchor = _as_aware(event.target_date)
    reference = max(anchor, _now(now))

    dates = []
    units = _first_guess(anchor, kind, reference)
    while len(dates) < count:
        candidate = _step(anchor, kind, units)
        if candidate > reference:
            dates.append(candidate)
        units += 1
    return dates


def occurrence_count(event: Event, now: Optional[datetime] = None) -> int:
    """
    Approximate how many occurrences the series has had, counting this one.

    Counts whole periods since the occurrence's created_at, with a month
    taken as 30 days and a year as 365. Non-recurring events count once.
    """
    kind = RecurringType.parse(event.recurring_type)
    if not event.is_recurring or kind is None:
        return 1

    days = max(0, (_now(now) - _as_aware(event.created_at)).days)
    period = {RecurringType.WEEKLY: 7, RecurringType.MONTHLY: 30, RecurringType.YEARLY: 365}[kind]
    return days // period + 1


def will_recur_within(event: Event, days: float, now: Optional[datetime] = None) -> bool:
    """
    Check whether the series' next occurrence falls within `days` of now.

    The next occurrence is the first step past the event's own target date
    that also lies after `now`.
    """
    kind = RecurringType.parse(event.recurring_type)
    if not event.is_recurring or kind is None:
        return False

    now = _now(now)
    return next_occurrence_date(event.target_date, kind, now) <= now + timedelta(days=days)


def same_recurring_pattern(a: Event, b: Event) -> bool:
    """
    Heuristic check for two occurrences belonging to the same series.

    Occurrences share no series id, so this compares name, type and the
    calendar position of the target date.
    """
    if not (a.is_recurring and b.is_recurring):
        return False
    kind = RecurringType.parse(a.recurring_type)
    if kind is None or kind != RecurringType.parse(b.recurring_type):
        return False
    if a.name != b.name:
        return False

    da, db = _as_aware(a.target_date), _as_aware(b.target_date)
    if kind == RecurringType.WEEKLY:
        return da.weekday() == db.weekday()
    if kind == RecurringType.MONTHLY:
        return da.day == db.day
    return (da.month, da.day) == (db.month, db.day)


def describe_recurrence(event: Event) -> str:
    """Human-readable description of the repeat pattern."""
    kind = RecurringType.parse(event.recurring_type)
    if not event.is_recurring or kind is None:
        return "Not recurring"

    target = event.target_date
    if kind == RecurringType.WEEKLY:
        return f"Every week ({DAY_NAMES[target.weekday()]})"
    if kind == RecurringType.MONTHLY:
        return f"Every month (day {target.day})"
    return f"Every year ({calendar.month_name[target.month]} {target.day})"
