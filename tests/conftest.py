"""
Global pytest configuration and fixtures for tminus tests

Provides:
- Event factory
- In-memory storage, remote store and notification fakes
- Mock NATS client with a row-storage responder
"""

import pytest
from datetime import datetime, timedelta, timezone

from tminus.events.models import Event, RecurringType

from tests.fixtures.fakes import FakeRemoteStore, MemoryStorage, RecordingNotifications
from tests.fixtures.mock_nats import MockRowService, create_mock_nats


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom settings"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


# ============================================================================
# Events
# ============================================================================

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed reference time"""
    return NOW


@pytest.fixture
def make_event():
    """Factory for events with sensible defaults"""
    counter = {"n": 0}

    def _make(name="Launch", target=None, **kwargs):
        counter["n"] += 1
        kwargs.setdefault("id", f"e{counter['n']}")
        kwargs.setdefault("created_at", NOW - timedelta(days=1))
        if target is None:
            target = datetime.now(timezone.utc) + timedelta(days=30)
        return Event(name=name, target_date=target, **kwargs)

    return _make


@pytest.fixture
def weekly_event(make_event):
    """Recurring weekly event that elapsed two days before NOW"""
    return make_event(
        "Standup",
        NOW - timedelta(days=2),
        is_recurring=True,
        recurring_type=RecurringType.WEEKLY,
        category_id="work",
        notification_enabled=True,
        notification_times=(15,),
    )


# ============================================================================
# Collaborator Fakes
# ============================================================================

@pytest.fixture
def remote():
    return FakeRemoteStore()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def notifications():
    return RecordingNotifications()


# ============================================================================
# Mock NATS
# ============================================================================

@pytest.fixture
async def mock_nats():
    """Connected mock NATS client"""
    nats = create_mock_nats()
    yield nats
    await nats.close()


@pytest.fixture
async def row_service(mock_nats):
    """Row-storage responder attached to mock_nats"""
    service = MockRowService(mock_nats)
    await service.start()
    return service
