"""
Data models for EventWatch.

Upstream JSON is parsed into frozen dataclasses at the ingestion boundary:
1. FlightRecord for live (VATSIM) and historical (STATSIM) flights
2. EventRecord for scheduled network events
"""

from eventwatch.models.event import EventOrganiser, EventRecord, EventRoute, EventStatus
from eventwatch.models.flight import FlightRecord, normalize_airport

__all__ = [
    'EventOrganiser',
    'EventRecord',
    'EventRoute',
    'EventStatus',
    'FlightRecord',
    'normalize_airport',
]
