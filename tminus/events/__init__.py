"""
tminus/events/__init__.py

Event model and the pure logic around it.

Provides:
- Event dataclass and its local serialization
- Recurring-event materialization
- Remote row mapping
- Countdown arithmetic and datetime parsing
- Form and event validation
"""

from .countdown import TimeRemaining, format_time_remaining, is_event_soon, parse_datetime, time_remaining
from .models import Event, RecurringType, ThemeMode, generate_id, sort_events
from .recurrence import (
    create_next_occurrence,
    describe_recurrence,
    next_occurrence_date,
    occurrence_count,
    process_collection,
    same_recurring_pattern,
    should_recreate,
    upcoming_occurrences,
    will_recur_within,
)

__all__ = [
    "Event",
    "RecurringType",
    "ThemeMode",
    "generate_id",
    "sort_events",
    "TimeRemaining",
    "time_remaining",
    "format_time_remaining",
    "is_event_soon",
    "parse_datetime",
    "should_recreate",
    "next_occurrence_date",
    "create_next_occurrence",
    "process_collection",
    "upcoming_occurrences",
    "occurrence_count",
    "will_recur_within",
    "same_recurring_pattern",
    "describe_recurrence",
]
