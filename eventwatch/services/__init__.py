"""Cache-fronted services used by the API layer and the scheduler."""

from eventwatch.services.container import Services, build_services
from eventwatch.services.event_traffic import EventTraffic, EventTrafficService
from eventwatch.services.flight_data import FlightDataService, parse_window, validate_airport_code

__all__ = [
    'EventTraffic',
    'EventTrafficService',
    'FlightDataService',
    'Services',
    'build_services',
    'parse_window',
    'validate_airport_code',
]
