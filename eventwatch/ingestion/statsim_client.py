"""
STATSIM historical flights client.

VATSIM's public API only provides live data. STATSIM archives completed
flights and answers range queries:

    GET /api/Flights/Dates?from=<iso>&to=<iso>  ->  [flight, ...]

A fixed range never changes once it is in the past, which is what makes
the long historical cache TTL safe.
"""

import logging
from datetime import datetime
from typing import List

from eventwatch.config import config
from eventwatch.errors import UpstreamUnavailable
from eventwatch.ingestion.base import JsonFeedClient
from eventwatch.models import FlightRecord
from eventwatch.timeutils import format_timestamp

logger = logging.getLogger(__name__)


class StatsimClient(JsonFeedClient):
    """Client for STATSIM flight history range queries."""

    source = 'STATSIM'

    def __init__(self, base_url: str = 'https://api.statsim.net', **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip('/')

    @classmethod
    def from_config(cls) -> 'StatsimClient':
        """Create client from application configuration."""
        return cls(
            base_url=config.upstream.statsim_base_url,
            timeout=config.upstream.timeout_seconds,
        )

    def fetch_historical_flights(self, start: datetime, end: datetime) -> List[FlightRecord]:
        """
        Fetch flights logged between start and end.

        Unparsable records are dropped individually.

        Raises:
            UpstreamUnavailable on network/API errors or a malformed payload
        """
        params = {
            'from': format_timestamp(start),
            'to': format_timestamp(end),
        }
        data = self._get_json(f'{self.base_url}/api/Flights/Dates', params=params)
        if data is None:
            data = []
        if not isinstance(data, list):
            raise UpstreamUnavailable(self.source, 'expected a list of flights')

        flights = []
        for raw in data:
            record = FlightRecord.from_statsim(raw)
            if record:
                flights.append(record)

        dropped = len(data) - len(flights)
        if dropped:
            logger.warning(f'Dropped {dropped} malformed STATSIM records')
        logger.info(f'Received {len(flights)} historical flights from STATSIM')
        return flights
