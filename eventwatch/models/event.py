"""
EventRecord - a scheduled VATSIM network event.

Mirrors the ``/api/v2/events/latest`` payload. The id is assigned by
VATSIM and stable across time, so it is the dedup key everywhere.

``to_dict`` reproduces the upstream shape so that a persisted snapshot
loads back into an identical record.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from eventwatch.models.flight import normalize_airport
from eventwatch.timeutils import format_timestamp, parse_timestamp


class EventStatus(str, Enum):
    """Event status relative to the current time."""
    UPCOMING = 'upcoming'
    LIVE = 'live'
    PAST = 'past'


@dataclass(frozen=True)
class EventRoute:
    """Recommended route between two event airports."""
    departure: Optional[str]
    arrival: Optional[str]
    route: str = ''

    def to_dict(self) -> dict:
        return {
            'departure': self.departure,
            'arrival': self.arrival,
            'route': self.route,
        }


@dataclass(frozen=True)
class EventOrganiser:
    region: Optional[str] = None
    division: Optional[str] = None
    subdivision: Optional[str] = None
    organised_by_vatsim: bool = False

    def to_dict(self) -> dict:
        return {
            'region': self.region,
            'division': self.division,
            'subdivision': self.subdivision,
            'organised_by_vatsim': self.organised_by_vatsim,
        }


@dataclass(frozen=True)
class EventRecord:
    """
    A network event with its schedule and airports.

    Invariant: start_time < end_time (enforced on construction).
    """
    id: int
    name: str
    event_type: str
    start_time: datetime
    end_time: datetime
    airports: Tuple[str, ...] = ()
    routes: Tuple[EventRoute, ...] = ()
    organisers: Tuple[EventOrganiser, ...] = ()
    link: str = ''
    banner: str = ''
    short_description: str = ''
    description: str = ''

    def __post_init__(self):
        if self.start_time >= self.end_time:
            raise ValueError(f'Event {self.id}: start_time must be before end_time')

    def __repr__(self) -> str:
        return f'<EventRecord {self.id} {self.name!r}>'

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EventRecord':
        """
        Build an event from its upstream (or persisted) JSON form.

        Raises ValueError if required fields are missing or malformed.
        """
        if not isinstance(data, dict):
            raise ValueError('event payload must be an object')

        try:
            event_id = int(data['id'])
        except (KeyError, TypeError, ValueError):
            raise ValueError('event id is missing or not an integer')

        start_time = parse_timestamp(data.get('start_time'))
        end_time = parse_timestamp(data.get('end_time'))
        if start_time is None or end_time is None:
            raise ValueError(f'Event {event_id}: start_time and end_time are required')

        airports = []
        for airport in data.get('airports') or []:
            code = normalize_airport(airport.get('icao') if isinstance(airport, dict) else airport)
            if code and code not in airports:
                airports.append(code)

        routes = tuple(
            EventRoute(
                departure=normalize_airport(r.get('departure')),
                arrival=normalize_airport(r.get('arrival')),
                route=r.get('route') or '',
            )
            for r in data.get('routes') or []
            if isinstance(r, dict)
        )

        organisers = tuple(
            EventOrganiser(
                region=o.get('region'),
                division=o.get('division'),
                subdivision=o.get('subdivision'),
                organised_by_vatsim=bool(o.get('organised_by_vatsim')),
            )
            for o in data.get('organisers') or []
            if isinstance(o, dict)
        )

        return cls(
            id=event_id,
            name=data.get('name') or '',
            event_type=data.get('type') or '',
            start_time=start_time,
            end_time=end_time,
            airports=tuple(airports),
            routes=routes,
            organisers=organisers,
            link=data.get('link') or '',
            banner=data.get('banner') or '',
            short_description=data.get('short_description') or '',
            description=data.get('description') or '',
        )

    def to_dict(self) -> dict:
        """Convert to the upstream JSON shape."""
        return {
            'id': self.id,
            'type': self.event_type,
            'name': self.name,
            'link': self.link,
            'organisers': [o.to_dict() for o in self.organisers],
            'airports': [{'icao': code} for code in self.airports],
            'routes': [r.to_dict() for r in self.routes],
            'start_time': format_timestamp(self.start_time),
            'end_time': format_timestamp(self.end_time),
            'short_description': self.short_description,
            'description': self.description,
            'banner': self.banner,
        }

    @property
    def airport_set(self) -> FrozenSet[str]:
        return frozenset(self.airports)

    def has_started(self, now: datetime) -> bool:
        return self.start_time <= now

    def has_concluded(self, now: datetime) -> bool:
        return self.end_time < now

    def status(self, now: datetime) -> EventStatus:
        """Classify the event as upcoming, live, or past at ``now``."""
        if now < self.start_time:
            return EventStatus.UPCOMING
        if now <= self.end_time:
            return EventStatus.LIVE
        return EventStatus.PAST
