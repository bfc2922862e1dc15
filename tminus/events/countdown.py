"""
tminus/events/countdown.py

Countdown arithmetic and datetime parsing utilities.

Provides:
- TimeRemaining breakdown of the time left until a target
- Human-readable formatting of remaining time
- Datetime parsing for multiple user-friendly formats
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional


SOON_THRESHOLD = timedelta(hours=24)


# =============================================================================
# Remaining Time
# =============================================================================

@dataclass(frozen=True)
class TimeRemaining:
    """
    Time left until a target, split into display units.

    Attributes:
        days: Whole days.
        hours: Hours past the whole days (0-23).
        minutes: Minutes past the whole hours (0-59).
        seconds: Seconds past the whole minutes (0-59).
        total_seconds: Whole seconds remaining overall.
        is_finished: True once the target has been reached.
    """
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    total_seconds: int = 0
    is_finished: bool = True


def time_remaining(target: datetime, now: Optional[datetime] = None) -> TimeRemaining:
    """
    Calculate the time left until `target`.

    Args:
        target: Target time. If naive, assumed UTC.
        now: Reference time (default: now UTC).

    Returns:
        TimeRemaining; all zeros with is_finished=True once target is reached.
    """
    if target.tzinfo is None:
        target = target.replace(tzinfo=timezone.utc)
    if now is None:
        now = datetime.now(timezone.utc)

    total = int((target - now).total_seconds())
    if total <= 0:
        return TimeRemaining()

    return TimeRemaining(
        days=total // 86400,
        hours=(total % 86400) // 3600,
        minutes=(total % 3600) // 60,
        seconds=total % 60,
        total_seconds=total,
        is_finished=False,
    )


def format_time_remaining(remaining: TimeRemaining) -> str:
    """
    Format a TimeRemaining compactly, e.g. "6d 4h 30m" or "12m 5s".

    Seconds are only shown for countdowns under a day.
    """
    if remaining.is_finished:
        return "Finished"

    parts = []
    if remaining.days > 0:
        parts.append(f"{remaining.days}d")
    if remaining.hours > 0:
        parts.append(f"{remaining.hours}h")
    if remaining.minutes > 0:
        parts.append(f"{remaining.minutes}m")
    if remaining.seconds > 0 and remaining.days == 0:
        parts.append(f"{remaining.seconds}s")
    return " ".join(parts) or "0s"


def is_event_soon(target: datetime, now: Optional[datetime] = None) -> bool:
    """Check if a target is still ahead but within the next 24 hours."""
    remaining = time_remaining(target, now)
    return not remaining.is_finished and remaining.total_seconds <= SOON_THRESHOLD.total_seconds()


# =============================================================================
# Datetime Parsing
# =============================================================================

# Patterns for relative time parsing
RELATIVE_PATTERNS = [
    # "in 2 hours", "in 30 minutes", "in 1 day"
    (r"in\s+(\d+)\s+(second|minute|hour|day|week)s?$", "relative"),
    # "2 hours", "30 minutes" (without "in")
    (r"^(\d+)\s+(second|minute|hour|day|week)s?$", "relative"),
    # "tomorrow", "tomorrow 14:00"
    (r"tomorrow(?:\s+(\d{1,2}):(\d{2}))?$", "tomorrow"),
]

# Patterns for absolute datetime parsing
DATETIME_PATTERNS = [
    # "2025-12-01 20:00" or "2025-12-01 20:00:00"
    (r"(\d{4})-(\d{2})-(\d{2})[\st](\d{1,2}):(\d{2})(?::(\d{2}))?$", "iso"),
    # "01/12/2025 20:00" (form format: DD/MM/YYYY HH:MM)
    (r"(\d{2})/(\d{2})/(\d{4})\s+(\d{2}):(\d{2})$", "form"),
]

TIME_UNITS = {
    "second": 1,
    "minute": 60,
    "hour": 3600,
    "day": 86400,
    "week": 604800,
}


def parse_datetime(time_str: str, now: Optional[datetime] = None) -> datetime:
    """
    Parse user input into a datetime object.

    Supported formats:
    - "2025-12-01 20:00", "2025-12-01 20:00:00" or "2025-12-01T20:00"
    - "01/12/2025 20:00" (DD/MM/YYYY HH:MM, as entered in the form)
    - "tomorrow" or "tomorrow 14:00"
    - "in 2 hours", "in 30 minutes", "in 1 day"
    - "2 hours", "30 minutes" (shorthand)

    All times are treated as UTC.

    Args:
        time_str: User input string representing a time.
        now: Reference time for relative formats (default: now UTC).

    Returns:
        datetime object in UTC.

    Raises:
        ValueError: If format not recognized or time is invalid.
    """
    time_str = time_str.strip().lower()
    if now is None:
        now = datetime.now(timezone.utc)

    for pattern, pattern_type in RELATIVE_PATTERNS:
        match = re.match(pattern, time_str)
        if not match:
            continue
        if pattern_type == "relative":
            seconds = int(match.group(1)) * TIME_UNITS[match.group(2)]
            return now + timedelta(seconds=seconds)

        tomorrow = now + timedelta(days=1)
        if match.group(1):
            try:
                return tomorrow.replace(
                    hour=int(match.group(1)), minute=int(match.group(2)),
                    second=0, microsecond=0
                )
            except ValueError as e:
                raise ValueError(f"Invalid time: {e}")
        return tomorrow.replace(second=0, microsecond=0)

    for pattern, pattern_type in DATETIME_PATTERNS:
        match = re.match(pattern, time_str)
        if not match:
            continue
        groups = match.groups()
        if pattern_type == "iso":
            year, month, day = int(groups[0]), int(groups[1]), int(groups[2])
            second = int(groups[5]) if groups[5] else 0
        else:
            day, month, year = int(groups[0]), int(groups[1]), int(groups[2])
            second = 0
        hour, minute = int(groups[3]), int(groups[4])

        try:
            return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
        except ValueError as e:
            raise ValueError(f"Invalid date/time values: {e}")

    raise ValueError(
        f"Couldn't parse '{time_str}'. "
        "Try: '2025-12-01 20:00', 'tomorrow 19:00', or 'in 2 hours'"
    )
