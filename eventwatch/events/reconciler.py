"""
Reconciler - merges the live events feed with the local event store.

Pipeline stages for one refresh:
1. Fetch: pull live/upcoming events from VATSIM
2. Ingest: offer every fetched event to the EventStore (candidate policy)
3. Sweep: purge entries past the retention window, persist
4. Merge: live list first, then stored events the feed no longer returns
5. Publish: store the merged listing in the ResponseCache

Dedup is by event id and the live copy always wins over the cached copy.

On upstream failure the last merged listing is served, even if past its
TTL. With no listing at all, the store contents are served alone, all
marked as cached.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from eventwatch.cache import ResponseCache
from eventwatch.errors import UpstreamUnavailable
from eventwatch.events.store import EventStore
from eventwatch.models import EventRecord
from eventwatch.timeutils import Clock, format_timestamp, utc_now

logger = logging.getLogger(__name__)

# Provenance of an EventListing
SOURCE_FRESH = 'fresh'
SOURCE_RESPONSE_CACHE = 'response_cache'
SOURCE_STALE_RESPONSE = 'stale_response'
SOURCE_EVENT_STORE = 'event_store'


@dataclass(frozen=True)
class EventListing:
    """The externally visible, merged event list."""
    events: List[EventRecord]
    live_count: int
    cached_count: int
    source: str
    generated_at: datetime
    errors: List[str] = field(default_factory=list)

    @property
    def is_stale(self) -> bool:
        return self.source in (SOURCE_STALE_RESPONSE, SOURCE_EVENT_STORE)

    def find(self, event_id: int) -> Optional[EventRecord]:
        for event in self.events:
            if event.id == event_id:
                return event
        return None

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict for API responses."""
        return {
            'data': [event.to_dict() for event in self.events],
            'meta': {
                'live': self.live_count,
                'cached': self.cached_count,
                'source': self.source,
                'stale': self.is_stale,
                'generated_at': format_timestamp(self.generated_at),
            },
        }


def merge_events(
    live_events: Sequence[EventRecord],
    cached_events: Sequence[EventRecord],
) -> List[EventRecord]:
    """
    Union of live and cached events by id, live copy first and winning.

    Duplicate ids inside the live list keep their first occurrence.
    """
    merged: List[EventRecord] = []
    seen = set()
    for event in list(live_events) + list(cached_events):
        if event.id in seen:
            continue
        seen.add(event.id)
        merged.append(event)
    return merged


class Reconciler:
    """
    Produces the canonical event list from live data and the event store.

    Exposes on-demand refresh only; periodic refresh is driven by an
    external scheduler calling refresh().
    """

    def __init__(
        self,
        fetch_live_events: Callable[[], List[EventRecord]],
        store: EventStore,
        response_cache: ResponseCache,
        clock: Clock = utc_now,
    ):
        self._fetch_live_events = fetch_live_events
        self.store = store
        self.response_cache = response_cache
        self._clock = clock

        # Statistics
        self._refresh_count = 0
        self._error_count = 0
        self._last_refresh: Optional[datetime] = None

    def get_events(self) -> EventListing:
        """
        Get the merged event list.

        Serves the response cache if fresh and non-empty, otherwise
        refreshes from upstream.
        """
        cached = self.response_cache.get()
        if cached is not None and cached.events:
            age = self.response_cache.age_seconds() or 0
            logger.debug(f'Serving cached event response ({age:.0f}s old)')
            return replace(cached, source=SOURCE_RESPONSE_CACHE)

        logger.info('Event response cache expired or empty, fetching fresh data')
        return self.refresh()

    def refresh(self) -> EventListing:
        """
        Execute one fetch-ingest-sweep-merge cycle.

        Never raises for upstream failures; falls back to the last merged
        listing or the store contents instead.
        """
        now = self._clock()

        try:
            live_events = self._fetch_live_events()
        except UpstreamUnavailable as e:
            self._error_count += 1
            logger.error(f'Events fetch failed: {e}')
            return self._fallback(now, str(e))

        self._refresh_count += 1
        self._last_refresh = now

        self.store.sync(live_events, now)

        live_ids = {event.id for event in live_events}
        cached_only = [event for event in self.store.events() if event.id not in live_ids]
        merged = merge_events(live_events, cached_only)

        listing = EventListing(
            events=merged,
            live_count=len(merged) - len(cached_only),
            cached_count=len(cached_only),
            source=SOURCE_FRESH,
            generated_at=now,
        )
        self.response_cache.set(listing)

        logger.info(
            f'Returning {len(merged)} events '
            f'({listing.live_count} live, {listing.cached_count} past cached)'
        )
        return listing

    def _fallback(self, now: datetime, error: str) -> EventListing:
        last_good = self.response_cache.last_good()
        if last_good is not None:
            logger.warning('Fetch failed, using last known event list')
            return replace(last_good, source=SOURCE_STALE_RESPONSE, errors=[error])

        events = self.store.events()
        logger.warning(f'Fetch failed and no previous response, serving {len(events)} stored events')
        return EventListing(
            events=events,
            live_count=0,
            cached_count=len(events),
            source=SOURCE_EVENT_STORE,
            generated_at=now,
            errors=[error],
        )

    def find_event(self, event_id: int) -> Optional[EventRecord]:
        """Look up an event in the current merged listing."""
        event = self.get_events().find(event_id)
        if event is None:
            # The store may hold it even if the listing was built before it was cached
            stored = self.store.get(event_id)
            event = stored.event if stored else None
        return event

    @property
    def stats(self) -> dict:
        """Get reconciler statistics."""
        return {
            'refresh_count': self._refresh_count,
            'error_count': self._error_count,
            'last_refresh': format_timestamp(self._last_refresh),
            'response_age_seconds': self.response_cache.age_seconds(),
        }
