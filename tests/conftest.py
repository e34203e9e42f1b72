"""
Pytest configuration and shared fixtures for EventWatch tests.

Everything time-dependent takes an injected clock, so tests drive time
with FakeClock instead of sleeping. Network access is replaced by
FakeGateway.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

import pytest

from eventwatch.errors import UpstreamUnavailable
from eventwatch.models import EventRecord, FlightRecord

NOW = datetime(2026, 3, 14, 18, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeGateway:
    """In-memory stand-in for UpstreamGateway with switchable failures."""

    def __init__(self):
        self.snapshot: List[FlightRecord] = []
        self.events: List[EventRecord] = []
        self.history: List[FlightRecord] = []

        self.fail_live = False
        self.fail_events = False
        self.fail_history = False

        self.live_calls = 0
        self.event_calls = 0
        self.history_calls: list = []

    def fetch_live_snapshot(self) -> List[FlightRecord]:
        self.live_calls += 1
        if self.fail_live:
            raise UpstreamUnavailable('VATSIM', 'connection refused')
        return list(self.snapshot)

    def fetch_live_flights(self, airport_code: str) -> List[FlightRecord]:
        return [f for f in self.fetch_live_snapshot() if f.touches(airport_code)]

    def fetch_live_events(self) -> List[EventRecord]:
        self.event_calls += 1
        if self.fail_events:
            raise UpstreamUnavailable('VATSIM', 'API returned 503')
        return list(self.events)

    def fetch_historical_flights(self, start: datetime, end: datetime) -> List[FlightRecord]:
        self.history_calls.append((start, end))
        if self.fail_history:
            raise UpstreamUnavailable('STATSIM', 'did not respond in time', timed_out=True)
        return list(self.history)


def make_event(
    event_id: int = 1,
    start: Optional[datetime] = None,
    hours: float = 3,
    airports=('EDDF',),
    name: Optional[str] = None,
) -> EventRecord:
    """Build an event starting at ``start`` (default NOW) lasting ``hours``."""
    start = start or NOW
    return EventRecord(
        id=event_id,
        name=name or f'Event {event_id}',
        event_type='Event',
        start_time=start,
        end_time=start + timedelta(hours=hours),
        airports=tuple(airports),
    )


def make_flight(
    callsign: str = 'DLH100',
    origin: Optional[str] = 'EDDF',
    destination: Optional[str] = 'EGLL',
    departed: Optional[datetime] = None,
) -> FlightRecord:
    return FlightRecord(
        callsign=callsign,
        origin=origin,
        destination=destination,
        departed=departed,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def cache_path(tmp_path: Path) -> Path:
    """Location for an event cache file that does not exist yet."""
    return tmp_path / 'event-cache.json'


@pytest.fixture
def sample_event_payload() -> dict:
    """One event in the VATSIM events feed shape."""
    return {
        'id': 14237,
        'type': 'Event',
        'name': 'Frankfurt Overload',
        'link': 'https://my.vatsim.net/events/frankfurt-overload',
        'organisers': [
            {'region': 'EMEA', 'division': 'EUD', 'subdivision': 'GER', 'organised_by_vatsim': False}
        ],
        'airports': [{'icao': 'EDDF'}, {'icao': 'eddm'}],
        'routes': [{'departure': 'EDDF', 'arrival': 'EDDM', 'route': 'SULUS UZ650 TEKTU'}],
        'start_time': '2026-03-14T17:00:00.000000Z',
        'end_time': '2026-03-14T21:00:00.000000Z',
        'short_description': 'Busy evening in Frankfurt',
        'description': 'Full ATC coverage',
        'banner': 'https://example.org/banner.png',
    }


@pytest.fixture
def sample_pilot_payload() -> dict:
    """One pilot in the VATSIM live data feed shape."""
    return {
        'cid': 1234567,
        'name': 'Jane Pilot',
        'callsign': 'DLH4AB',
        'latitude': 50.03,
        'longitude': 8.57,
        'altitude': 34000,
        'groundspeed': 452,
        'heading': 78,
        'logon_time': '2026-03-14T16:10:00.000000Z',
        'last_updated': '2026-03-14T17:59:45.000000Z',
        'flight_plan': {
            'departure': 'EDDF',
            'arrival': 'eddm',
            'aircraft': 'A320/M-SDE2E3FGHIJ1RWXY/LB1',
            'aircraft_short': 'A320',
            'route': 'SULUS UZ650 TEKTU',
            'remarks': '/v/',
        },
    }


@pytest.fixture
def sample_statsim_payload() -> dict:
    """One flight in the STATSIM /api/Flights/Dates shape."""
    return {
        'id': 998877,
        'vatsimid': 1234567,
        'callsign': 'BAW12',
        'departure': 'egll',
        'destination': 'EDDF',
        'aircraft': 'A21N',
        'altitude': 36000,
        'route': 'DVR UL9 KONAN',
        'departed': '2026-03-14T17:05:00Z',
        'arrived': '2026-03-14T18:20:00Z',
        'loggedOn': '2026-03-14T16:40:00Z',
    }
