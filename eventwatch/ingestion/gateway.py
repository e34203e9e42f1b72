"""
UpstreamGateway - the single seam between the core and the network.

The caches, reconciler, and services only ever talk to this interface, so
tests can substitute an in-memory fake.
"""

from datetime import datetime
from typing import List, Optional

from eventwatch.ingestion.statsim_client import StatsimClient
from eventwatch.ingestion.vatsim_client import VatsimClient
from eventwatch.models import EventRecord, FlightRecord


class UpstreamGateway:
    """
    Facade over the VATSIM and STATSIM clients.

    Every method makes one timed attempt and raises UpstreamUnavailable
    on failure.
    """

    def __init__(
        self,
        vatsim: Optional[VatsimClient] = None,
        statsim: Optional[StatsimClient] = None,
    ):
        self.vatsim = vatsim or VatsimClient.from_config()
        self.statsim = statsim or StatsimClient.from_config()

    def fetch_live_snapshot(self) -> List[FlightRecord]:
        return self.vatsim.fetch_live_snapshot()

    def fetch_live_flights(self, airport_code: str) -> List[FlightRecord]:
        return self.vatsim.fetch_live_flights(airport_code)

    def fetch_live_events(self) -> List[EventRecord]:
        return self.vatsim.fetch_live_events()

    def fetch_historical_flights(self, start: datetime, end: datetime) -> List[FlightRecord]:
        return self.statsim.fetch_historical_flights(start, end)
