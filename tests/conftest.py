"""Shared fixtures for quote sync tests."""

import pytest

from quotesync.core import SyncEngine, TimedNotificationSink
from quotesync.store import DatabaseManager, Record, RecordStore, SlotRepository

from fakes import FakeRemoteClient


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def db_manager():
    """In-memory SQLite database with tables created."""
    manager = DatabaseManager("sqlite:///:memory:")
    manager.create_tables()
    yield manager
    manager.close()


@pytest.fixture
def slots(db_manager):
    return SlotRepository(db_manager)


@pytest.fixture
def seed():
    return [Record(text="t1", category="A")]


@pytest.fixture
def store(slots, seed):
    """Store hydrated from an empty database, i.e. holding the seed."""
    return RecordStore.open(slots, seed=seed)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier(clock):
    return TimedNotificationSink(display_seconds=5.0, clock=clock)


@pytest.fixture
def client():
    return FakeRemoteClient()


@pytest.fixture
def engine(store, client, notifier):
    sync_engine = SyncEngine(store, client, notifier, timeout_seconds=1.0)
    yield sync_engine
    sync_engine.stop()
