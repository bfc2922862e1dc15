"""
tests/unit/test_recurrence.py

Unit tests for recurring-event materialization.

Tests cover:
- Elapsed-occurrence detection and its fail-safe cases
- Next-date arithmetic (weekly, monthly clamping, yearly leap days)
- Collection processing
- Pattern helpers
- Series statistics (occurrence count, recurs-within window)
"""

import pytest
from datetime import datetime, timedelta, timezone

from tminus.events.models import Event, RecurringType
from tminus.events.recurrence import (
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


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


# =============================================================================
# should_recreate
# =============================================================================

class TestShouldRecreate:
    """Tests for elapsed recurring occurrence detection."""

    def test_elapsed_recurring_event(self, weekly_event, now):
        """Recurring event in the past is recreated."""
        assert should_recreate(weekly_event, now) is True

    def test_future_recurring_event(self, make_event, now):
        """Recurring event still ahead is left alone."""
        event = make_event(target=now + timedelta(hours=1), is_recurring=True,
                           recurring_type=RecurringType.MONTHLY)
        assert should_recreate(event, now) is False

    def test_non_recurring_past_event(self, make_event, now):
        """Past one-off event never recreates."""
        event = make_event(target=now - timedelta(days=3))
        assert should_recreate(event, now) is False

    def test_recurring_without_type(self, make_event, now):
        """Missing type is a no-op, not an error."""
        event = make_event(target=now - timedelta(days=3), is_recurring=True)
        assert should_recreate(event, now) is False

    def test_recurring_with_unknown_type(self, make_event, now):
        """Unknown type string is a no-op."""
        event = make_event(target=now - timedelta(days=3), is_recurring=True,
                           recurring_type="daily")
        assert should_recreate(event, now) is False

    def test_type_as_string(self, make_event, now):
        """String type values are accepted."""
        event = make_event(target=now - timedelta(days=3), is_recurring=True,
                           recurring_type="weekly")
        assert should_recreate(event, now) is True

    def test_target_equal_to_now(self, make_event, now):
        """An event exactly at now has not elapsed yet."""
        event = make_event(target=now, is_recurring=True, recurring_type=RecurringType.WEEKLY)
        assert should_recreate(event, now) is False


# =============================================================================
# next_occurrence_date
# =============================================================================

class TestNextOccurrenceDate:
    """Tests for date advancement anchored on the last occurrence."""

    def test_weekly_one_step(self):
        last = utc(2025, 6, 13, 9, 30)
        assert next_occurrence_date(last, RecurringType.WEEKLY, utc(2025, 6, 15)) == utc(2025, 6, 20, 9, 30)

    def test_weekly_catches_up_whole_weeks(self):
        """A sweep three weeks late lands on the first slot after now."""
        last = utc(2025, 5, 23, 9, 30)  # Friday
        result = next_occurrence_date(last, RecurringType.WEEKLY, utc(2025, 6, 15))
        assert result == utc(2025, 6, 20, 9, 30)
        assert result.weekday() == last.weekday()

    def test_monthly_keeps_day(self):
        last = utc(2025, 5, 10, 18, 0)
        assert next_occurrence_date(last, RecurringType.MONTHLY, utc(2025, 5, 11)) == utc(2025, 6, 10, 18, 0)

    def test_monthly_clamps_short_month(self):
        last = utc(2025, 1, 31, 8, 0)
        assert next_occurrence_date(last, RecurringType.MONTHLY, utc(2025, 2, 1)) == utc(2025, 2, 28, 8, 0)

    def test_monthly_clamp_does_not_drift(self):
        """Clamping in February does not pull later months to the 28th."""
        last = utc(2025, 1, 31, 8, 0)
        assert next_occurrence_date(last, RecurringType.MONTHLY, utc(2025, 3, 1)) == utc(2025, 3, 31, 8, 0)

    def test_monthly_across_year_boundary(self):
        last = utc(2024, 12, 5)
        assert next_occurrence_date(last, RecurringType.MONTHLY, utc(2024, 12, 6)) == utc(2025, 1, 5)

    def test_monthly_many_months_late(self):
        last = utc(2024, 3, 20)
        assert next_occurrence_date(last, RecurringType.MONTHLY, utc(2025, 6, 15)) == utc(2025, 6, 20)

    def test_yearly_one_step(self):
        last = utc(2024, 12, 25, 0, 0)
        assert next_occurrence_date(last, RecurringType.YEARLY, utc(2025, 1, 2)) == utc(2025, 12, 25)

    def test_yearly_leap_day(self):
        """Feb 29 falls back to Feb 28 in common years and returns in leap years."""
        last = utc(2024, 2, 29)
        assert next_occurrence_date(last, RecurringType.YEARLY, utc(2024, 3, 1)) == utc(2025, 2, 28)
        assert next_occurrence_date(last, RecurringType.YEARLY, utc(2027, 3, 1)) == utc(2028, 2, 29)

    def test_yearly_thirteen_months_late(self):
        """Processing delay never skips or repeats a year."""
        last = utc(2024, 5, 1)
        assert next_occurrence_date(last, RecurringType.YEARLY, utc(2025, 6, 1)) == utc(2026, 5, 1)

    def test_result_always_after_last(self):
        """Even with now before last_date, at least one unit is added."""
        last = utc(2025, 6, 20)
        assert next_occurrence_date(last, RecurringType.WEEKLY, utc(2025, 6, 1)) == utc(2025, 6, 27)

    def test_preserves_timezone(self):
        tz = timezone(timedelta(hours=-3))
        last = datetime(2025, 6, 1, 20, 0, tzinfo=tz)
        result = next_occurrence_date(last, RecurringType.WEEKLY, utc(2025, 6, 2))
        assert result.tzinfo == tz
        assert (result.hour, result.minute) == (20, 0)

    def test_invalid_type_raises(self):
        with pytest.raises(ValueError):
            next_occurrence_date(utc(2025, 1, 1), "daily", utc(2025, 1, 2))


# =============================================================================
# create_next_occurrence / process_collection
# =============================================================================

class TestCreateNextOccurrence:
    """Tests for building replacement occurrences."""

    def test_copies_fields_with_new_identity(self, weekly_event, now):
        nxt = create_next_occurrence(weekly_event, now)

        assert nxt is not None
        assert nxt.id != weekly_event.id
        assert nxt.name == weekly_event.name
        assert nxt.category_id == weekly_event.category_id
        assert nxt.notification_enabled == weekly_event.notification_enabled
        assert nxt.notification_times == weekly_event.notification_times
        assert nxt.recurring_type == RecurringType.WEEKLY
        assert nxt.target_date > weekly_event.target_date
        assert nxt.target_date > now
        assert nxt.created_at == now

    def test_returns_none_for_future_event(self, make_event, now):
        event = make_event(target=now + timedelta(days=1), is_recurring=True,
                           recurring_type=RecurringType.WEEKLY)
        assert create_next_occurrence(event, now) is None

    def test_returns_none_for_missing_type(self, make_event, now):
        event = make_event(target=now - timedelta(days=1), is_recurring=True)
        assert create_next_occurrence(event, now) is None


class TestProcessCollection:
    """Tests for one-for-one collection processing."""

    def test_replaces_only_elapsed_recurring(self, make_event, weekly_event, now):
        future = make_event("Future", now + timedelta(days=5), is_recurring=True,
                            recurring_type=RecurringType.YEARLY)
        past_once = make_event("Done", now - timedelta(days=5))
        broken = make_event("Broken", now - timedelta(days=5), is_recurring=True)
        events = [past_once, weekly_event, future, broken]

        result = process_collection(events, now)

        assert len(result) == len(events)
        assert result[0] is past_once
        assert result[1].id != weekly_event.id
        assert result[1].name == "Standup"
        assert result[2] is future
        assert result[3] is broken

    def test_empty_collection(self, now):
        assert process_collection([], now) == []

    def test_never_duplicates(self, weekly_event, now):
        result = process_collection([weekly_event], now)
        assert len(result) == 1


# =============================================================================
# Pattern Helpers
# =============================================================================

class TestPatternHelpers:
    """Tests for upcoming dates, dedupe heuristic and descriptions."""

    def test_upcoming_weekly(self, make_event, now):
        event = make_event(target=utc(2025, 6, 20, 9), is_recurring=True,
                           recurring_type=RecurringType.WEEKLY)
        dates = upcoming_occurrences(event, 3, now)
        assert dates == [utc(2025, 6, 27, 9), utc(2025, 7, 4, 9), utc(2025, 7, 11, 9)]

    def test_upcoming_from_elapsed_event(self, make_event, now):
        event = make_event(target=utc(2025, 6, 1), is_recurring=True,
                           recurring_type=RecurringType.MONTHLY)
        assert upcoming_occurrences(event, 2, now) == [utc(2025, 7, 1), utc(2025, 8, 1)]

    def test_upcoming_non_recurring(self, make_event, now):
        assert upcoming_occurrences(make_event(), 3, now) == []

    def test_same_pattern_weekly(self, make_event):
        a = make_event("Gym", utc(2025, 6, 2), is_recurring=True, recurring_type=RecurringType.WEEKLY)
        b = make_event("Gym", utc(2025, 6, 16), is_recurring=True, recurring_type=RecurringType.WEEKLY)
        assert same_recurring_pattern(a, b) is True

    def test_different_name_is_different_pattern(self, make_event):
        a = make_event("Gym", utc(2025, 6, 2), is_recurring=True, recurring_type=RecurringType.WEEKLY)
        b = make_event("Swim", utc(2025, 6, 16), is_recurring=True, recurring_type=RecurringType.WEEKLY)
        assert same_recurring_pattern(a, b) is False

    def test_same_pattern_yearly_needs_month_and_day(self, make_event):
        a = make_event("Bday", utc(2024, 3, 5), is_recurring=True, recurring_type=RecurringType.YEARLY)
        b = make_event("Bday", utc(2025, 3, 5), is_recurring=True, recurring_type=RecurringType.YEARLY)
        c = make_event("Bday", utc(2025, 4, 5), is_recurring=True, recurring_type=RecurringType.YEARLY)
        assert same_recurring_pattern(a, b) is True
        assert same_recurring_pattern(a, c) is False

    def test_describe(self, make_event):
        weekly = make_event(target=utc(2025, 6, 20), is_recurring=True, recurring_type=RecurringType.WEEKLY)
        monthly = make_event(target=utc(2025, 6, 15), is_recurring=True, recurring_type=RecurringType.MONTHLY)
        yearly = make_event(target=utc(2025, 12, 25), is_recurring=True, recurring_type=RecurringType.YEARLY)

        assert describe_recurrence(weekly) == "Every week (Friday)"
        assert describe_recurrence(monthly) == "Every month (day 15)"
        assert describe_recurrence(yearly) == "Every year (December 25)"
        assert describe_recurrence(make_event()) == "Not recurring"


# =============================================================================
# Series Statistics
# =============================================================================

class TestSeriesStatistics:
    """Tests for occurrence_count and will_recur_within."""

    @pytest.mark.parametrize("kind, age_days, expected", [
        (RecurringType.WEEKLY, 20, 3),
        (RecurringType.MONTHLY, 65, 3),
        (RecurringType.YEARLY, 400, 2),
        (RecurringType.WEEKLY, 0, 1),
    ])
    def test_occurrence_count(self, make_event, now, kind, age_days, expected):
        event = make_event(is_recurring=True, recurring_type=kind,
                           created_at=now - timedelta(days=age_days))
        assert occurrence_count(event, now) == expected

    def test_occurrence_count_non_recurring(self, make_event, now):
        event = make_event(created_at=now - timedelta(days=100))
        assert occurrence_count(event, now) == 1

    def test_occurrence_count_created_in_future(self, make_event, now):
        event = make_event(is_recurring=True, recurring_type=RecurringType.WEEKLY,
                           created_at=now + timedelta(days=3))
        assert occurrence_count(event, now) == 1

    def test_will_recur_within_future_target(self, make_event, now):
        event = make_event(target=utc(2025, 6, 16), is_recurring=True,
                           recurring_type=RecurringType.WEEKLY)

        # Next occurrence is June 23
        assert will_recur_within(event, 7, now) is False
        assert will_recur_within(event, 8, now) is True

    def test_will_recur_within_elapsed_target(self, make_event, now):
        event = make_event(target=now - timedelta(days=2), is_recurring=True,
                           recurring_type=RecurringType.WEEKLY)

        assert will_recur_within(event, 5, now) is True
        assert will_recur_within(event, 4, now) is False

    def test_will_recur_within_non_recurring(self, make_event, now):
        assert will_recur_within(make_event(target=now + timedelta(hours=1)), 30, now) is False
