from datetime import datetime, timedelta, timezone

import pytest

from backend import LocalBroker
from gateway import BroadcastGateway, Session
from registry import RoomRegistry

T0 = datetime(2026, 6, 14, 18, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = T0):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


def drain(session: Session) -> list:
    events = []
    while not session.outbox.empty():
        events.append(session.outbox.get_nowait())
    return events


def events_named(events: list, name: str) -> list:
    return [e for e in events if e["event"] == name]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return RoomRegistry(clock=clock)


@pytest.fixture
def gateway(registry):
    return BroadcastGateway(registry, LocalBroker())


@pytest.fixture
def connect(gateway):
    def _connect(session_id=None):
        session = Session(session_id)
        gateway.connect(session)
        return session
    return _connect
