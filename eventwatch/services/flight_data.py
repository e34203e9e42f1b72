"""
Flight data service - cache-fronted access to live and historical flights.

Owns two independently tuned TTL caches:
- live:       one snapshot of the whole VATSIM network, 30s TTL. Every
              airport query filters the same snapshot, so the feed is hit
              at most once per TTL regardless of how many airports ask.
- historical: STATSIM range queries keyed by (from, to), 10min TTL, last
              50 ranges.

Lookup order for both: fresh cache -> upstream -> stale cache -> error.
Inputs are validated before any cache or upstream interaction.
"""

import logging
import re
from datetime import datetime
from typing import List, Optional, Tuple

from eventwatch.cache import TTLCache
from eventwatch.config import config
from eventwatch.errors import InvalidQueryWindow, UpstreamUnavailable
from eventwatch.models import FlightRecord
from eventwatch.timeutils import Clock, format_timestamp, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

ICAO_PATTERN = re.compile(r'^[A-Z]{4}$')
LIVE_SNAPSHOT_KEY = 'vatsim-data'

HistoryKey = Tuple[str, str]


def validate_airport_code(value: Optional[str]) -> str:
    """Normalize and validate a 4-letter ICAO airport code."""
    code = (value or '').strip().upper()
    if not ICAO_PATTERN.match(code):
        raise InvalidQueryWindow(
            'ICAO must be a 4-letter airport code (e.g., EDDF)', field='icao'
        )
    return code


def validate_window(start: Optional[datetime], end: Optional[datetime]) -> Tuple[datetime, datetime]:
    """Reject missing or empty/inverted query windows."""
    if start is None or end is None:
        raise InvalidQueryWindow('from and to are required (ISO 8601 format)', field='from')
    if end <= start:
        raise InvalidQueryWindow('to must be after from', field='to')
    return start, end


def parse_window(from_value: Optional[str], to_value: Optional[str]) -> Tuple[datetime, datetime]:
    """Parse and validate a (from, to) pair of ISO 8601 strings."""
    try:
        start = parse_timestamp(from_value)
        end = parse_timestamp(to_value)
    except ValueError:
        raise InvalidQueryWindow('from and to must be ISO 8601 timestamps', field='from')
    return validate_window(start, end)


class FlightDataService:
    """
    Serves live and historical flights through the cache tiers.

    The gateway must provide fetch_live_snapshot() and
    fetch_historical_flights(start, end).
    """

    def __init__(
        self,
        gateway,
        live_cache: Optional[TTLCache] = None,
        history_cache: Optional[TTLCache] = None,
        clock: Clock = utc_now,
    ):
        self.gateway = gateway
        self.live_cache: TTLCache[str, List[FlightRecord]] = live_cache or TTLCache(
            ttl_seconds=config.cache.live_ttl_seconds,
            name='live-cache',
            clock=clock,
        )
        self.history_cache: TTLCache[HistoryKey, List[FlightRecord]] = history_cache or TTLCache(
            ttl_seconds=config.cache.history_ttl_seconds,
            max_entries=config.cache.history_max_entries,
            name='history-cache',
            clock=clock,
        )

    def live_snapshot(self) -> List[FlightRecord]:
        """
        Get the current network snapshot.

        Raises:
            UpstreamUnavailable if the feed fails and nothing was cached
        """
        flights = self.live_cache.get(LIVE_SNAPSHOT_KEY)
        if flights is not None:
            return flights

        logger.info('Fetching fresh VATSIM data')
        try:
            flights = self.gateway.fetch_live_snapshot()
        except UpstreamUnavailable:
            stale = self.live_cache.get_stale_fallback(LIVE_SNAPSHOT_KEY)
            if stale is None:
                raise
            logger.warning('Using stale VATSIM data as fallback')
            return stale

        self.live_cache.set(LIVE_SNAPSHOT_KEY, flights)
        return flights

    def live_flights(self, airport_code: str) -> List[FlightRecord]:
        """
        Get live flights departing from or arriving at an airport.

        Raises:
            InvalidQueryWindow for a malformed airport code
            UpstreamUnavailable if the feed fails and nothing was cached
        """
        code = validate_airport_code(airport_code)
        flights = [f for f in self.live_snapshot() if f.touches(code)]
        logger.info(f'{len(flights)} live flights found for {code}')
        return flights

    def historical_flights(self, start: datetime, end: datetime) -> List[FlightRecord]:
        """
        Get flights logged in a time range.

        Raises:
            InvalidQueryWindow if end <= start
            UpstreamUnavailable if STATSIM fails and the range was never cached
        """
        start, end = validate_window(start, end)
        key = (format_timestamp(start), format_timestamp(end))

        flights = self.history_cache.get(key)
        if flights is not None:
            return flights

        logger.info(f'Fetching STATSIM flights from {key[0]} to {key[1]}')
        try:
            flights = self.gateway.fetch_historical_flights(start, end)
        except UpstreamUnavailable:
            stale = self.history_cache.get_stale_fallback(key)
            if stale is None:
                raise
            logger.warning('Using stale STATSIM data as fallback')
            return stale

        self.history_cache.set(key, flights)
        logger.info(f'{len(flights)} historical flights cached for {key[0]} to {key[1]}')
        return flights

    @property
    def stats(self) -> dict:
        """Get cache statistics for both tiers."""
        return {
            'live': self.live_cache.stats,
            'history': self.history_cache.stats,
        }
