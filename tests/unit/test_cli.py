"""
tests/unit/test_cli.py

Unit tests for command-line parsing and event construction.
"""

import logging
import pytest
from datetime import datetime, timedelta, timezone

from tminus.__main__ import build_event, build_parser, format_event
from tminus.events.models import Event, RecurringType


NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


class TestBuildParser:
    """Tests for argument parsing."""

    def test_add_arguments(self):
        args = build_parser().parse_args([
            "-c", "custom.yaml", "add", "Trip", "in 2 days",
            "--every", "yearly", "--notify", "60", "1440",
        ])

        assert args.config == "custom.yaml"
        assert args.command == "add"
        assert args.name == "Trip"
        assert args.every == "yearly"
        assert args.notify == [60, 1440]

    def test_default_config(self):
        args = build_parser().parse_args(["list"])
        assert args.config == "tminus.yaml"
        assert args.debug is False

    def test_invalid_recurrence_choice(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["add", "Trip", "tomorrow", "--every", "daily"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestBuildEvent:
    """Tests for validating input into an Event."""

    def test_simple_event(self):
        event = build_event("  Trip  ", "in 2 days", now=NOW)

        assert event.name == "Trip"
        assert event.target_date == NOW + timedelta(days=2)
        assert event.is_recurring is False
        assert event.recurring_type is None
        assert event.notification_enabled is False

    def test_recurring_with_notifications(self):
        event = build_event(
            "Birthday", "01/12/2025 20:00", every="yearly", category="family",
            notify=[60, 1440], now=NOW
        )

        assert event.target_date == datetime(2025, 12, 1, 20, 0, tzinfo=timezone.utc)
        assert event.is_recurring is True
        assert event.recurring_type is RecurringType.YEARLY
        assert event.category_id == "family"
        assert event.notification_enabled is True
        assert event.notification_times == (60, 1440)

    def test_short_name(self):
        with pytest.raises(ValueError, match="at least 3"):
            build_event("ab", "in 2 days", now=NOW)

    def test_past_target(self):
        with pytest.raises(ValueError, match="future"):
            build_event("Trip", "2020-01-01 10:00", now=NOW)

    def test_unparseable_target(self):
        with pytest.raises(ValueError, match="Couldn't parse"):
            build_event("Trip", "next blue moon", now=NOW)

    def test_duplicate_name_only_warns(self, caplog):
        existing = [Event("e1", "Trip", NOW + timedelta(days=1))]

        with caplog.at_level(logging.WARNING):
            event = build_event("trip", "in 2 days", existing=existing, now=NOW)

        assert event.name == "trip"
        assert "already exists" in caplog.text


class TestFormatEvent:
    """Tests for list output."""

    def test_soon_and_recurring_markers(self):
        event = Event(
            "e1", "Standup", NOW + timedelta(hours=3),
            is_recurring=True, recurring_type=RecurringType.WEEKLY
        )

        line = format_event(event, NOW)

        assert line.startswith("e1  Standup")
        assert "3h" in line
        assert "[soon]" in line
        assert "(Every week (Sunday))" in line
