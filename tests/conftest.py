"""Pytest configuration and shared fixtures.

This module provides:
- Common test fixtures for data directories, the store and the event bus
- A fake clock so time windows are deterministic
- Pytest markers for test categorization (unit, integration, slow)
"""
import tempfile
from pathlib import Path
from typing import Generator, List

import pytest

from app.events import Event, EventBus, EventType
from monitor.issues import IssueLog
from storage.sqlite_store import TimeSeriesStore
from tests.mocks import FakeClock, FakeTimerFactory


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: mark test as a unit test (fast, isolated)")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# =============================================================================
# Directory and Path Fixtures
# =============================================================================


@pytest.fixture
def temp_data_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test data."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def integration_data_dir(tmp_path: Path) -> Path:
    """Create a data directory for integration tests."""
    data_dir = tmp_path / "link_monitor_integration"
    data_dir.mkdir()
    return data_dir


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def fake_clock() -> FakeClock:
    """A controllable wall clock, starting at midday local time."""
    return FakeClock()


@pytest.fixture
def store(temp_data_dir: Path) -> TimeSeriesStore:
    """Create a TimeSeriesStore in a temporary directory."""
    return TimeSeriesStore(data_dir=temp_data_dir)


@pytest.fixture
def sync_event_bus() -> EventBus:
    """Event bus that dispatches on the publishing thread."""
    return EventBus(async_mode=False)


@pytest.fixture
def recorded_events(sync_event_bus: EventBus) -> List[Event]:
    """Every event published on sync_event_bus, in order."""
    events: List[Event] = []
    for event_type in EventType:
        sync_event_bus.subscribe(event_type, events.append)
    return events


@pytest.fixture
def issue_log(store: TimeSeriesStore, fake_clock: FakeClock) -> IssueLog:
    """Issue log writing to the test store."""
    return IssueLog(store, clock=fake_clock)


@pytest.fixture
def timer_factory() -> FakeTimerFactory:
    """Timer factory whose timers only fire when told to."""
    return FakeTimerFactory()
