"""
Event traffic service - traffic flow and statistics for one event.

Window selection by event status:
- past:      history from 30min before start to 30min after end
- live:      history from 30min before start to now; the bucket grid
             still runs to 30min after end, future buckets stay at zero
- upcoming:  no history yet

Live and upcoming events also get a snapshot of current traffic at the
event airports from the live feed.

Per-hour rate: relevant flights departing within [start, min(end, now))
divided by that span in hours. Past and live events use the same rule.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from eventwatch.analytics import EventWindow, TimeBucket, TrafficAggregator, TrafficSummary
from eventwatch.errors import EventNotFound, UpstreamUnavailable
from eventwatch.events import Reconciler
from eventwatch.models import EventRecord, EventStatus, FlightRecord
from eventwatch.services.flight_data import FlightDataService
from eventwatch.timeutils import Clock, format_timestamp, utc_now

logger = logging.getLogger(__name__)


@dataclass
class EventTraffic:
    """Traffic analysis for one event."""
    event: EventRecord
    window: EventWindow
    flow: List[TimeBucket] = field(default_factory=list)
    per_airport: Dict[str, List[TimeBucket]] = field(default_factory=dict)
    summary: Optional[TrafficSummary] = None
    live: Optional[TrafficSummary] = None
    historical_flights: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict for API responses."""
        return {
            'event': {
                'id': self.event.id,
                'name': self.event.name,
                'airports': list(self.event.airports),
                'start_time': format_timestamp(self.event.start_time),
                'end_time': format_timestamp(self.event.end_time),
                'status': self.window.status.value,
            },
            'window': {
                'query_start': format_timestamp(self.window.query_start),
                'data_end': format_timestamp(self.window.data_end),
                'timeline_end': format_timestamp(self.window.timeline_end),
            },
            'flow': [bucket.to_dict() for bucket in self.flow],
            'per_airport': {
                airport: [bucket.to_dict() for bucket in buckets]
                for airport, buckets in self.per_airport.items()
            },
            'summary': self.summary.to_dict() if self.summary else None,
            'live': self.live.to_dict() if self.live else None,
            'historical_flights': self.historical_flights,
            'errors': self.errors,
        }


class EventTrafficService:
    """Builds EventTraffic by combining the reconciler, flight data, and aggregator."""

    def __init__(
        self,
        reconciler: Reconciler,
        flight_data: FlightDataService,
        aggregator: Optional[TrafficAggregator] = None,
        clock: Clock = utc_now,
    ):
        self.reconciler = reconciler
        self.flight_data = flight_data
        self.aggregator = aggregator or TrafficAggregator()
        self._clock = clock

    def event_traffic(self, event_id: int) -> EventTraffic:
        """
        Compute traffic flow and statistics for an event.

        Raises:
            EventNotFound if the event is neither live nor cached
            UpstreamUnavailable if a past event's history cannot be loaded
        """
        event = self.reconciler.find_event(event_id)
        if event is None:
            raise EventNotFound(event_id)

        now = self._clock()
        window = self.aggregator.event_window(event, now)
        traffic = EventTraffic(event=event, window=window)

        if window.needs_history:
            history = self._load_history(window, traffic)
            traffic.historical_flights = len(history)
            self._aggregate(event, window, history, traffic, now)

        if window.status != EventStatus.PAST:
            traffic.live = self._live_summary(event, traffic)

        return traffic

    def _load_history(self, window: EventWindow, traffic: EventTraffic) -> List[FlightRecord]:
        try:
            return self.flight_data.historical_flights(window.query_start, window.history_end)
        except UpstreamUnavailable as e:
            if window.status == EventStatus.PAST:
                raise
            # Live events still have the live snapshot to show
            logger.warning(f'Historical traffic unavailable for live event: {e}')
            traffic.errors.append(str(e))
            return []

    def _aggregate(
        self,
        event: EventRecord,
        window: EventWindow,
        history: List[FlightRecord],
        traffic: EventTraffic,
        now: datetime,
    ) -> None:
        airports = event.airports
        traffic.flow = self.aggregator.aggregate(
            history, airports, window.query_start, window.timeline_end, window.data_end
        )
        traffic.per_airport = self.aggregator.aggregate_per_airport(
            history, airports, window.query_start, window.timeline_end, window.data_end
        )

        observed_end = min(event.end_time, now)
        if observed_end > event.start_time:
            traffic.summary = self.aggregator.summarize(
                history, airports, event.start_time, observed_end
            )

    def _live_summary(self, event: EventRecord, traffic: EventTraffic) -> Optional[TrafficSummary]:
        try:
            snapshot = self.flight_data.live_snapshot()
        except UpstreamUnavailable as e:
            logger.warning(f'Live traffic unavailable for event {event.id}: {e}')
            traffic.errors.append(str(e))
            return None

        # Remove duplicates by callsign
        unique: Dict[str, FlightRecord] = {}
        for flight in snapshot:
            if any(flight.touches(airport) for airport in event.airports):
                unique[flight.callsign] = flight

        return self.aggregator.summarize_snapshot(list(unique.values()), event.airports)
