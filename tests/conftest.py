"""Shared fixtures: in-memory database, stores, and a fake readsb feed."""

import uuid as uuid_lib
from typing import List, Optional

import pytest

from feedernet.ingestion.readsb_client import AircraftReport, ReceiverStats, TelemetryUnavailable
from feedernet.models import (
    AircraftPosition, ApiTier, Feeder, User,
    create_db_engine, create_session_factory, init_db, session_scope,
)
from feedernet.stores import PositionStore, FlightStore, FeederStore, FeederStatsStore

# 2026-01-01 12:00:00 UTC
BASE_TS = 1767268800


class FakeClock:
    """Manually advanced clock returning Unix seconds."""

    def __init__(self, now: int = BASE_TS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class FakeReadsb:
    """Stand-in for ReadsbClient. stats=None simulates an unreachable feed."""

    def __init__(self, stats: Optional[ReceiverStats] = None, aircraft: Optional[List[AircraftReport]] = None):
        self.stats = stats
        self.aircraft = aircraft
        self.calls = 0

    def get_stats(self) -> ReceiverStats:
        self.calls += 1
        if self.stats is None:
            raise TelemetryUnavailable('connection refused')
        return self.stats

    def get_aircraft(self):
        self.calls += 1
        if self.aircraft is None:
            raise TelemetryUnavailable('connection refused')
        return float(BASE_TS), self.aircraft


def receiver_stats(messages_last_minute: int = 1200, **overrides) -> ReceiverStats:
    values = {
        'messages_total': 500_000,
        'positions_total': 120_000,
        'aircraft_tracked': 42,
        'messages_last_minute': messages_last_minute,
        'positions_last_minute': 300,
        'aircraft_with_pos': 30,
        'now': float(BASE_TS),
    }
    values.update(overrides)
    return ReceiverStats(**values)


def position(hex: str = 'a1b2c3', ts: int = BASE_TS, lat: float = 40.0, lon: float = -75.0,
             altitude: Optional[int] = 10000, callsign: Optional[str] = None, **extra) -> AircraftPosition:
    """Transient (unsaved) position for pure-function tests."""
    return AircraftPosition(
        hex=hex, timestamp=ts, lat=lat, lon=lon, altitude=altitude,
        heading=extra.get('heading'), speed=extra.get('speed'),
        squawk=extra.get('squawk'), callsign=callsign,
    )


def position_record(hex: str = 'a1b2c3', ts: int = BASE_TS, lat: float = 40.0, lon: float = -75.0,
                    altitude: Optional[int] = 10000, callsign: Optional[str] = None) -> dict:
    """Row dict for PositionStore.append_positions."""
    return {
        'hex': hex, 'timestamp': ts, 'lat': lat, 'lon': lon, 'altitude': altitude,
        'heading': None, 'speed': None, 'squawk': None, 'callsign': callsign,
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_factory():
    engine = create_db_engine('sqlite://')
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def position_store(session_factory) -> PositionStore:
    return PositionStore(session_factory)


@pytest.fixture
def flight_store(session_factory) -> FlightStore:
    return FlightStore(session_factory)


@pytest.fixture
def feeder_store(session_factory) -> FeederStore:
    return FeederStore(session_factory)


@pytest.fixture
def stats_store(session_factory) -> FeederStatsStore:
    return FeederStatsStore(session_factory)


@pytest.fixture
def make_user(session_factory):
    counter = {'n': 0}

    def _make(tier: ApiTier = ApiTier.FREE, email: Optional[str] = None) -> User:
        counter['n'] += 1
        user = User(
            email=email or f'user{counter["n"]}@example.com',
            name=f'User {counter["n"]}',
            api_tier=tier.value,
        )
        with session_scope(session_factory) as session:
            session.add(user)
        return user

    return _make


@pytest.fixture
def make_feeder(session_factory, make_user):
    def _make(user: Optional[User] = None, name: str = 'feeder', **fields) -> Feeder:
        user = user or make_user()
        feeder = Feeder(
            uuid=str(uuid_lib.uuid4()),
            name=name,
            user_id=user.id,
            **fields,
        )
        with session_scope(session_factory) as session:
            session.add(feeder)
        return feeder

    return _make
