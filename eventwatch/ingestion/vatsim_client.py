"""
VATSIM API clients.

Live data feed (``/v3/vatsim-data.json``):
    Full network snapshot, refreshed upstream every ~15 seconds. Only
    ``pilots[]`` is used; pilots without a flight plan are dropped.

Events feed (``/api/v2/events/latest``):
    ``{"data": [event, ...]}`` with live and upcoming events only.
    Concluded events are never returned, which is why EventStore exists.

Both return parsed records; malformed entries are skipped with a log line.
"""

import logging
from typing import List

from eventwatch.config import config
from eventwatch.errors import UpstreamUnavailable
from eventwatch.ingestion.base import JsonFeedClient
from eventwatch.models import EventRecord, FlightRecord, normalize_airport

logger = logging.getLogger(__name__)


class VatsimClient(JsonFeedClient):
    """
    Client for the VATSIM live data and events feeds.

    Handles:
    - GET requests to the data feed and the events API
    - Per-call timeout
    - Shape checks at the ingestion boundary
    """

    source = 'VATSIM'

    def __init__(
        self,
        data_url: str = 'https://data.vatsim.net/v3/vatsim-data.json',
        events_url: str = 'https://my.vatsim.net/api/v2/events/latest',
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.data_url = data_url
        self.events_url = events_url

    @classmethod
    def from_config(cls) -> 'VatsimClient':
        """Create client from application configuration."""
        return cls(
            data_url=config.upstream.vatsim_data_url,
            events_url=config.upstream.vatsim_events_url,
            timeout=config.upstream.timeout_seconds,
        )

    def fetch_live_snapshot(self) -> List[FlightRecord]:
        """
        Fetch every pilot with a flight plan from the live data feed.

        Raises:
            UpstreamUnavailable on network/API errors or a malformed payload
        """
        data = self._get_json(self.data_url)
        pilots = data.get('pilots') if isinstance(data, dict) else None
        if not isinstance(pilots, list):
            raise UpstreamUnavailable(self.source, 'live data has no pilots list')

        flights = []
        for pilot in pilots:
            record = FlightRecord.from_vatsim_pilot(pilot)
            if record:
                flights.append(record)

        logger.info(f'Received {len(pilots)} pilots from VATSIM, {len(flights)} with flight plans')
        return flights

    def fetch_live_flights(self, airport_code: str) -> List[FlightRecord]:
        """Fetch live flights departing from or arriving at one airport."""
        code = normalize_airport(airport_code)
        return [f for f in self.fetch_live_snapshot() if f.touches(code)]

    def fetch_live_events(self) -> List[EventRecord]:
        """
        Fetch live and upcoming events.

        Raises:
            UpstreamUnavailable on network/API errors or a malformed payload
        """
        data = self._get_json(self.events_url)
        raw_events = data.get('data') if isinstance(data, dict) else None
        if raw_events is None:
            raw_events = []
        if not isinstance(raw_events, list):
            raise UpstreamUnavailable(self.source, 'events payload has no data list')

        events = []
        for raw in raw_events:
            try:
                events.append(EventRecord.from_dict(raw))
            except ValueError as e:
                logger.warning(f'Skipping malformed event: {e}')

        logger.info(f'Received {len(events)} events from VATSIM')
        return events
