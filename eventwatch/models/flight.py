"""
FlightRecord - point-in-time observation of one flight.

Two upstream shapes feed this model:

VATSIM live data feed (``pilots[]``):
    callsign, cid, name, latitude, longitude, altitude, groundspeed,
    heading, logon_time, last_updated, flight_plan{departure, arrival,
    aircraft_short, aircraft, route, remarks}

STATSIM historical feed (``/api/Flights/Dates``):
    id, vatsimid, callsign, departure, destination, aircraft, altitude,
    route, departed, arrived, loggedOn

Records are parsed once at the ingestion boundary and never mutated.
Cache entries holding them are replaced wholesale on refresh.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from eventwatch.timeutils import format_timestamp, parse_timestamp


def normalize_airport(value: Any) -> Optional[str]:
    """Uppercase an airport code, or None if missing."""
    if not value or not isinstance(value, str):
        return None
    return value.strip().upper() or None


def _callsign(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f'callsign must be a string, got {value!r}')
    return value.strip()


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == '':
        return None
    return int(value)


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == '':
        return None
    return float(value)


@dataclass(frozen=True)
class FlightRecord:
    """
    A single flight observation.

    ``departed`` absent means "not yet departed" for live data; historical
    aggregation skips such records. ``arrived`` absent means still airborne.
    """
    callsign: str
    origin: Optional[str]
    destination: Optional[str]
    aircraft: Optional[str] = None
    altitude: Optional[int] = None  # feet
    departed: Optional[datetime] = None
    arrived: Optional[datetime] = None
    logged_on: Optional[datetime] = None

    # Live feed only
    cid: Optional[int] = None
    pilot_name: Optional[str] = None
    groundspeed: Optional[int] = None  # knots
    heading: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    last_updated: Optional[datetime] = None
    route: str = ''
    remarks: str = ''

    # Historical feed only
    statsim_id: Optional[int] = None

    def __post_init__(self):
        if not self.callsign:
            raise ValueError('callsign is required')
        if self.arrived is not None:
            if self.departed is None:
                raise ValueError(f'{self.callsign}: arrived without departed')
            if self.departed > self.arrived:
                raise ValueError(f'{self.callsign}: departed after arrived')

    def __repr__(self) -> str:
        return f'<FlightRecord {self.callsign} {self.origin or "?"}->{self.destination or "?"}>'

    @classmethod
    def from_vatsim_pilot(cls, pilot: Dict[str, Any]) -> Optional['FlightRecord']:
        """
        Parse a pilot entry from the VATSIM live data feed.

        Returns None for pilots without a flight plan or with a malformed
        entry; live flights are only useful when they have a route.
        """
        if not isinstance(pilot, dict):
            return None
        flight_plan = pilot.get('flight_plan')
        if not isinstance(flight_plan, dict):
            return None

        try:
            return cls(
                callsign=_callsign(pilot.get('callsign')),
                origin=normalize_airport(flight_plan.get('departure')),
                destination=normalize_airport(flight_plan.get('arrival')),
                aircraft=flight_plan.get('aircraft_short') or flight_plan.get('aircraft') or None,
                altitude=_optional_int(pilot.get('altitude')),
                logged_on=parse_timestamp(pilot.get('logon_time')),
                cid=_optional_int(pilot.get('cid')),
                pilot_name=pilot.get('name'),
                groundspeed=_optional_int(pilot.get('groundspeed')),
                heading=_optional_int(pilot.get('heading')),
                latitude=_optional_float(pilot.get('latitude')),
                longitude=_optional_float(pilot.get('longitude')),
                last_updated=parse_timestamp(pilot.get('last_updated')),
                route=flight_plan.get('route') or '',
                remarks=flight_plan.get('remarks') or '',
            )
        except (TypeError, ValueError):
            return None

    @classmethod
    def from_statsim(cls, raw: Dict[str, Any]) -> Optional['FlightRecord']:
        """
        Parse a historical flight from STATSIM.

        Returns None if required fields are missing or timestamps are
        unparsable, so one bad record never blanks out a whole query.
        """
        if not isinstance(raw, dict):
            return None

        try:
            return cls(
                callsign=_callsign(raw.get('callsign')),
                origin=normalize_airport(raw.get('departure')),
                destination=normalize_airport(raw.get('destination')),
                aircraft=raw.get('aircraft') or None,
                altitude=_optional_int(raw.get('altitude')),
                departed=parse_timestamp(raw.get('departed')),
                arrived=parse_timestamp(raw.get('arrived')),
                logged_on=parse_timestamp(raw.get('loggedOn')),
                cid=_optional_int(raw.get('vatsimid')),
                route=raw.get('route') or '',
                statsim_id=_optional_int(raw.get('id')),
            )
        except (TypeError, ValueError):
            return None

    def touches(self, airport: str) -> bool:
        """Whether the flight departs from or arrives at ``airport``."""
        return self.origin == airport or self.destination == airport

    def to_live_dict(self) -> dict:
        """Convert to the live flights API response shape."""
        return {
            'callsign': self.callsign,
            'cid': self.cid,
            'name': self.pilot_name,
            'departure': self.origin or 'N/A',
            'arrival': self.destination or 'N/A',
            'aircraft': self.aircraft or 'N/A',
            'altitude': self.altitude,
            'groundspeed': self.groundspeed,
            'heading': self.heading,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'logon_time': format_timestamp(self.logged_on),
            'last_updated': format_timestamp(self.last_updated),
            'route': self.route,
            'remarks': self.remarks,
        }

    def to_history_dict(self) -> dict:
        """Convert to the historical flights API response shape."""
        return {
            'id': self.statsim_id,
            'vatsimid': self.cid,
            'callsign': self.callsign,
            'departure': self.origin,
            'destination': self.destination,
            'aircraft': self.aircraft,
            'altitude': self.altitude,
            'route': self.route,
            'departed': format_timestamp(self.departed),
            'arrived': format_timestamp(self.arrived),
            'loggedOn': format_timestamp(self.logged_on),
        }
