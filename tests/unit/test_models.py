"""
tests/unit/test_models.py

Unit tests for the Event model and its local JSON format.
"""

import re
from datetime import datetime, timedelta, timezone

from tminus.events.models import Event, RecurringType, generate_id, sort_events


class TestGenerateId:
    """Tests for occurrence id generation."""

    def test_format(self):
        assert re.fullmatch(r"\d{13}-[0-9a-z]{9}", generate_id())

    def test_unique(self):
        assert len({generate_id() for _ in range(200)}) == 200


class TestRecurringTypeParse:
    """Tests for RecurringType.parse."""

    def test_member_passthrough(self):
        assert RecurringType.parse(RecurringType.MONTHLY) is RecurringType.MONTHLY

    def test_string_case_insensitive(self):
        assert RecurringType.parse(" Weekly ") is RecurringType.WEEKLY

    def test_unknown(self):
        assert RecurringType.parse("daily") is None
        assert RecurringType.parse(None) is None
        assert RecurringType.parse(7) is None


class TestLocalFormat:
    """Tests for Event.to_dict / Event.from_dict."""

    def test_camel_case_keys(self):
        event = Event("e1", "Trip", datetime(2026, 1, 1, tzinfo=timezone.utc),
                      is_recurring=True, recurring_type=RecurringType.YEARLY,
                      notification_times=(60,))
        data = event.to_dict()

        assert data["targetDate"] == "2026-01-01T00:00:00+00:00"
        assert data["recurringType"] == "yearly"
        assert data["notificationTimes"] == [60]
        assert "categoryId" not in data
        assert "userId" not in data

    def test_round_trip(self):
        event = Event("e1", "Trip", datetime(2026, 1, 1, 8, tzinfo=timezone.utc),
                      created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
                      category_id="travel", notification_enabled=True,
                      notification_times=(30, 60), user_id="u1")
        assert Event.from_dict(event.to_dict()) == event

    def test_naive_timestamps_are_utc(self):
        event = Event.from_dict({
            "id": "e1", "name": "Trip",
            "targetDate": "2026-01-01T08:00:00",
            "createdAt": "2025-01-01T00:00:00",
        })
        assert event.target_date == datetime(2026, 1, 1, 8, tzinfo=timezone.utc)
        assert event.is_recurring is False

    def test_create_assigns_identity(self):
        target = datetime.now(timezone.utc) + timedelta(days=1)
        event = Event.create("Trip", target, category_id="travel")

        assert event.id
        assert event.category_id == "travel"
        assert event.created_at <= datetime.now(timezone.utc)


def test_sort_events():
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    late = Event("a", "Late", base + timedelta(days=2))
    early = Event("b", "Early", base)
    assert [e.id for e in sort_events([late, early])] == ["b", "a"]


def test_sort_mixes_naive_and_aware_targets():
    aware = Event("a", "Aware", datetime(2026, 1, 2, tzinfo=timezone.utc))
    naive = Event("b", "Naive", datetime(2026, 1, 1, 12, 0))

    assert naive.target_date.tzinfo is timezone.utc
    assert [e.id for e in sort_events([aware, naive])] == ["b", "a"]


def test_with_changes_normalizes_naive_target():
    event = Event("a", "Trip", datetime(2026, 1, 1, tzinfo=timezone.utc))
    moved = event.with_changes(target_date=datetime(2026, 2, 1))
    assert moved.target_date == datetime(2026, 2, 1, tzinfo=timezone.utc)
