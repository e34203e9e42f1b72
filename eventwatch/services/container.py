"""
Service wiring.

Builds the cache manager objects once per process. The HTTP layer and the
scheduler share this single set; nothing else holds cache state.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from eventwatch.analytics import TrafficAggregator
from eventwatch.cache import ResponseCache
from eventwatch.config import config
from eventwatch.events import EventStore, Reconciler
from eventwatch.ingestion import UpstreamGateway
from eventwatch.services.event_traffic import EventTrafficService
from eventwatch.services.flight_data import FlightDataService
from eventwatch.timeutils import Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """The shared cache-owning objects of one process."""
    gateway: object
    flight_data: FlightDataService
    event_store: EventStore
    reconciler: Reconciler
    event_traffic: EventTrafficService
    clock: Clock = utc_now

    @property
    def stats(self) -> dict:
        return {
            'flights': self.flight_data.stats,
            'response_cache': self.reconciler.response_cache.stats,
            'event_store': self.event_store.stats,
            'reconciler': self.reconciler.stats,
        }


def build_services(
    gateway=None,
    cache_file: Union[str, Path, None] = None,
    clock: Clock = utc_now,
    load_store: bool = True,
) -> Services:
    """
    Create and connect all services.

    Args:
        gateway: Upstream gateway (real VATSIM/STATSIM clients if None)
        cache_file: Event cache path (config default if None)
        clock: Time source shared by every cache
        load_store: Whether to load the event cache file now
    """
    if gateway is None:
        gateway = UpstreamGateway()

    event_store = EventStore(path=cache_file, clock=clock)
    if load_store:
        event_store.load()

    flight_data = FlightDataService(gateway, clock=clock)
    reconciler = Reconciler(
        fetch_live_events=gateway.fetch_live_events,
        store=event_store,
        response_cache=ResponseCache(config.cache.response_ttl_seconds, clock=clock),
        clock=clock,
    )
    event_traffic = EventTrafficService(
        reconciler=reconciler,
        flight_data=flight_data,
        aggregator=TrafficAggregator(),
        clock=clock,
    )

    logger.info(f'Services ready ({len(event_store)} cached events loaded)')

    return Services(
        gateway=gateway,
        flight_data=flight_data,
        event_store=event_store,
        reconciler=reconciler,
        event_traffic=event_traffic,
        clock=clock,
    )
