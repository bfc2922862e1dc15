"""
tminus/events/validation.py

Stateless rule checks for event forms and stored events.

Each check returns a ValidationResult carrying the first failure message.
Form dates are entered as DD/MM/YYYY and times as HH:MM; both are
interpreted as UTC.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from .models import Event, RecurringType


NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 100
YEAR_MIN = 2000
YEAR_MAX = 2100
MAX_NOTIFICATION_TIMES = 5

_DATE_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")
_TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation check."""

    valid: bool
    """Whether every rule passed."""

    error: Optional[str] = None
    """First failure message if valid=False, None otherwise."""

    def __bool__(self) -> bool:
        """Allow using result in boolean context: if result: ..."""
        return self.valid


OK = ValidationResult(True)


def _fail(message: str) -> ValidationResult:
    return ValidationResult(False, message)


@dataclass
class EventForm:
    """
    Raw user input for creating or editing an event.

    Attributes:
        name: Event name as typed.
        date: DD/MM/YYYY.
        time: HH:MM.
        category_id: Optional category reference.
        is_recurring: Whether the event repeats.
        recurring_type: Repeat interval as typed ("weekly", ...).
        notification_enabled: Whether reminders are wanted.
        notification_times: Minutes-before offsets for reminders.
    """
    name: str
    date: str
    time: str
    category_id: Optional[str] = None
    is_recurring: bool = False
    recurring_type: Optional[str] = None
    notification_enabled: bool = False
    notification_times: Optional[Sequence[int]] = field(default=None)


def validate_name(name: Optional[str]) -> ValidationResult:
    if not name or not name.strip():
        return _fail("Enter a name for the event")
    if len(name.strip()) < NAME_MIN_LENGTH:
        return _fail(f"Name must be at least {NAME_MIN_LENGTH} characters")
    if len(name) > NAME_MAX_LENGTH:
        return _fail(f"Name cannot exceed {NAME_MAX_LENGTH} characters")
    return OK


def validate_date_format(date: Optional[str]) -> ValidationResult:
    """Check a DD/MM/YYYY date for format, ranges and calendar validity."""
    if not date:
        return _fail("Select a date")

    match = _DATE_RE.match(date)
    if not match:
        return _fail("Invalid date. Use the format dd/mm/yyyy")

    day, month, year = (int(g) for g in match.groups())
    if not 1 <= month <= 12:
        return _fail("Invalid month (1-12)")
    if not 1 <= day <= 31:
        return _fail("Invalid day (1-31)")
    if not YEAR_MIN <= year <= YEAR_MAX:
        return _fail(f"Year must be between {YEAR_MIN} and {YEAR_MAX}")

    try:
        datetime(year, month, day)
    except ValueError:
        return _fail("Invalid date for the selected month")
    return OK


def validate_time_format(time: Optional[str]) -> ValidationResult:
    """Check an HH:MM time."""
    if not time:
        return _fail("Select a time")

    match = _TIME_RE.match(time)
    if not match:
        return _fail("Invalid time. Use the format HH:MM")

    hour, minute = (int(g) for g in match.groups())
    if hour > 23:
        return _fail("Invalid hour (0-23)")
    if minute > 59:
        return _fail("Invalid minute (0-59)")
    return OK


def form_to_datetime(date: str, time: str) -> Optional[datetime]:
    """
    Combine a DD/MM/YYYY date and HH:MM time into a UTC datetime.

    Returns:
        The datetime, or None if either part is invalid.
    """
    if not validate_date_format(date) or not validate_time_format(time):
        return None
    day, month, year = (int(g) for g in _DATE_RE.match(date).groups())
    hour, minute = (int(g) for g in _TIME_RE.match(time).groups())
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def validate_future_date(date: str, time: str, now: Optional[datetime] = None) -> ValidationResult:
    target = form_to_datetime(date, time)
    if target is None:
        return _fail("Invalid date or time")
    if now is None:
        now = datetime.now(timezone.utc)
    if target <= now:
        return _fail("The date must be in the future")
    return OK


def validate_recurring_config(recurring_type) -> ValidationResult:
    if not recurring_type:
        return _fail("Select a recurrence type")
    if RecurringType.parse(recurring_type) is None:
        return _fail("Invalid recurrence type")
    return OK


def validate_notification_times(times) -> ValidationResult:
    """Check reminder offsets: 1 to 5 non-negative numbers of minutes."""
    if not isinstance(times, (list, tuple)):
        return _fail("Invalid notification times")
    if not times:
        return _fail("Select at least one notification time")
    if len(times) > MAX_NOTIFICATION_TIMES:
        return _fail(f"At most {MAX_NOTIFICATION_TIMES} notification times")
    for value in times:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            return _fail("Notification times must be positive numbers")
    return OK


def validate_form(form: EventForm, now: Optional[datetime] = None) -> ValidationResult:
    """
    Validate complete form input, stopping at the first failure.

    Order: name, date, time, future date, recurrence, notification times.
    """
    checks = [
        lambda: validate_name(form.name),
        lambda: validate_date_format(form.date),
        lambda: validate_time_format(form.time),
        lambda: validate_future_date(form.date, form.time, now),
    ]
    if form.is_recurring:
        checks.append(lambda: validate_recurring_config(form.recurring_type))
    if form.notification_enabled and form.notification_times is not None:
        checks.append(lambda: validate_notification_times(form.notification_times))

    for check in checks:
        result = check()
        if not result:
            return result
    return OK


def validate_event(event: Event) -> ValidationResult:
    """Validate an Event loaded from storage or the remote store."""
    if not event.id:
        return _fail("Event id is required")
    if not event.name or not event.name.strip():
        return _fail("Event name is required")
    if not event.target_date:
        return _fail("Event date is required")
    if not event.created_at:
        return _fail("Creation date is required")
    if event.is_recurring and RecurringType.parse(event.recurring_type) is None:
        return _fail("Recurring events need a recurrence type")
    return OK


def is_unique_event_name(
    name: str,
    existing: Iterable[Event],
    exclude_id: Optional[str] = None
) -> bool:
    """Check a name against existing events, ignoring case and surrounding whitespace."""
    normalized = name.strip().lower()
    return not any(
        event.name.strip().lower() == normalized and event.id != exclude_id
        for event in existing
    )
