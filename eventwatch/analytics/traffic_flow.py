"""
Traffic flow aggregation using NumPy.

Converts irregular point-in-time flight records into a regular time series
of fixed-width buckets (10 minutes by default), counting departures from
and arrivals to a reference airport set.

Algorithm:
1. Build the bucket grid: floor(start) to the timeline end, half-open, no
   gaps. Every bucket exists even when empty.
2. Vectorize: departure times become an epoch-seconds array, origin and
   destination membership become boolean masks.
3. Assign: bucket index = (departed - grid_start) // width.
4. Count with np.bincount: departures where the origin is in the set,
   arrivals where the destination is in the set, total where either is.
   A flight inside the set at both ends counts once toward total.

Live events clamp the data window to "now" while the grid still runs to
the scheduled end plus the post-event margin, so the timeline does not
shrink as the event progresses.

Records with an unusable departure time are skipped one by one; a bad
record never blanks out the series.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from eventwatch.config import config
from eventwatch.errors import InvalidQueryWindow
from eventwatch.models import EventRecord, EventStatus, FlightRecord, normalize_airport
from eventwatch.timeutils import floor_to_interval, format_timestamp

logger = logging.getLogger(__name__)


@dataclass
class TimeBucket:
    """One fixed-width slot of the traffic flow series."""
    start: datetime
    label: str
    departures: int = 0
    arrivals: int = 0
    total: int = 0

    def to_dict(self) -> dict:
        return {
            'time': self.label,
            'start': format_timestamp(self.start),
            'departures': self.departures,
            'arrivals': self.arrivals,
            'total': self.total,
        }


@dataclass(frozen=True)
class TrafficSummary:
    """
    Aggregate counts over a window.

    per_hour is None for snapshot (live) summaries, which have no window.
    """
    total: int
    departures: int
    arrivals: int
    per_hour: Optional[float] = None
    window_hours: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            'total': self.total,
            'departures': self.departures,
            'arrivals': self.arrivals,
            'per_hour': self.per_hour,
            'window_hours': self.window_hours,
        }


@dataclass(frozen=True)
class EventWindow:
    """
    Query and display window for an event's traffic.

    - query_start / history_end: range requested from the historical feed
    - data_end: flights departing at or after this are ignored
    - timeline_end: end of the bucket grid
    """
    status: EventStatus
    query_start: datetime
    history_end: datetime
    data_end: datetime
    timeline_end: datetime

    @property
    def needs_history(self) -> bool:
        return self.status != EventStatus.UPCOMING


class TrafficAggregator:
    """
    Buckets flight records into fixed-width intervals.

    Configuration:
    - bucket_minutes: bucket width (default 10)
    - margin_minutes: pre/post event margin for event windows (default 30)
    """

    def __init__(
        self,
        bucket_minutes: Optional[int] = None,
        margin_minutes: Optional[int] = None,
    ):
        if bucket_minutes is None:
            bucket_minutes = config.aggregation.bucket_minutes
        if margin_minutes is None:
            margin_minutes = config.aggregation.event_margin_minutes
        if bucket_minutes <= 0:
            raise ValueError('bucket_minutes must be positive')
        if margin_minutes < 0:
            raise ValueError('margin_minutes must not be negative')

        self.bucket_width = timedelta(minutes=bucket_minutes)
        self.margin = timedelta(minutes=margin_minutes)

        # Records skipped by the most recent aggregation
        self.last_skipped = 0

    # -------------------------------------------------------------------------
    # Windows and grid
    # -------------------------------------------------------------------------

    def event_window(self, event: EventRecord, now: datetime) -> EventWindow:
        """
        Choose the traffic window for an event.

        Past:     [start - margin, end + margin), grid the same
        Live:     [start - margin, now), grid through end + margin
        Upcoming: no history, grid through end + margin
        """
        status = event.status(now)
        query_start = event.start_time - self.margin
        timeline_end = event.end_time + self.margin

        if status == EventStatus.LIVE:
            # Minute resolution keeps the historical query cacheable
            history_end = now.replace(second=0, microsecond=0)
            if history_end <= query_start:
                history_end = now
            data_end = now
        elif status == EventStatus.PAST:
            history_end = timeline_end
            data_end = timeline_end
        else:
            history_end = query_start
            data_end = query_start

        return EventWindow(
            status=status,
            query_start=query_start,
            history_end=history_end,
            data_end=data_end,
            timeline_end=timeline_end,
        )

    def bucket_starts(self, start: datetime, end: datetime) -> List[datetime]:
        """
        Start times of every bucket covering [start, end).

        The first bucket is start floored to the bucket width.
        """
        if end <= start:
            raise InvalidQueryWindow('end must be after start', field='end')

        first = floor_to_interval(start, self.bucket_width)
        count = math.ceil((end - first) / self.bucket_width)
        return [first + i * self.bucket_width for i in range(count)]

    # -------------------------------------------------------------------------
    # Vectorization
    # -------------------------------------------------------------------------

    def _prepare(
        self,
        flights: Iterable[FlightRecord],
        airports: frozenset,
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Convert flights into (departure_seconds, origin_in_set, destination_in_set).

        Flights without a departure time are excluded. Flights whose
        record cannot be read are skipped and counted in last_skipped.
        """
        times: List[float] = []
        origin_in: List[bool] = []
        destination_in: List[bool] = []
        skipped = 0

        for flight in flights:
            try:
                departed = flight.departed
                if departed is None:
                    continue
                ts = departed.timestamp()
                origin = flight.origin
                destination = flight.destination
            except (AttributeError, TypeError, ValueError, OverflowError) as e:
                skipped += 1
                logger.debug(f'Skipping unreadable flight record {flight!r}: {e}')
                continue

            times.append(ts)
            origin_in.append(origin in airports)
            destination_in.append(destination in airports)

        if skipped:
            logger.warning(f'Skipped {skipped} unreadable flight records')
        self.last_skipped = skipped

        return (
            np.array(times, dtype=np.float64),
            np.array(origin_in, dtype=bool),
            np.array(destination_in, dtype=bool),
        )

    @staticmethod
    def _normalize_airports(airports: Iterable[str]) -> frozenset:
        codes = (normalize_airport(code) for code in airports)
        return frozenset(code for code in codes if code)

    # -------------------------------------------------------------------------
    # Aggregation
    # -------------------------------------------------------------------------

    def aggregate(
        self,
        flights: Sequence[FlightRecord],
        airports: Iterable[str],
        start: datetime,
        end: datetime,
        data_end: Optional[datetime] = None,
    ) -> List[TimeBucket]:
        """
        Bucket flights departing in [start, data_end) on a grid covering [start, end).

        Args:
            flights: Flight records (live or historical)
            airports: Reference airport set
            start: Window start
            end: Grid end (exclusive)
            data_end: Optional clamp for live data; defaults to end

        Returns:
            Ordered, gapless list of TimeBuckets
        """
        starts = self.bucket_starts(start, end)
        reference = self._normalize_airports(airports)
        data_end = min(data_end or end, end)

        n = len(starts)
        width_s = self.bucket_width.total_seconds()
        times, origin_in, destination_in = self._prepare(flights, reference)

        index = np.floor_divide(times - starts[0].timestamp(), width_s).astype(np.int64)
        in_window = (
            (times >= start.timestamp())
            & (times < data_end.timestamp())
            & (index >= 0)
            & (index < n)
        )

        departures = np.bincount(index[in_window & origin_in], minlength=n)
        arrivals = np.bincount(index[in_window & destination_in], minlength=n)
        totals = np.bincount(index[in_window & (origin_in | destination_in)], minlength=n)

        return [
            TimeBucket(
                start=bucket_start,
                label=bucket_start.strftime('%H:%M'),
                departures=int(departures[i]),
                arrivals=int(arrivals[i]),
                total=int(totals[i]),
            )
            for i, bucket_start in enumerate(starts)
        ]

    def aggregate_per_airport(
        self,
        flights: Sequence[FlightRecord],
        airports: Iterable[str],
        start: datetime,
        end: datetime,
        data_end: Optional[datetime] = None,
    ) -> Dict[str, List[TimeBucket]]:
        """Run aggregate() once per airport, each as its own reference set."""
        return {
            airport: self.aggregate(flights, [airport], start, end, data_end)
            for airport in sorted(self._normalize_airports(airports))
        }

    def summarize(
        self,
        flights: Sequence[FlightRecord],
        airports: Iterable[str],
        start: datetime,
        end: datetime,
    ) -> TrafficSummary:
        """
        Count relevant flights departing in [start, end).

        per_hour = total / window length in hours, one decimal.
        """
        if end <= start:
            raise InvalidQueryWindow('end must be after start', field='end')

        reference = self._normalize_airports(airports)
        times, origin_in, destination_in = self._prepare(flights, reference)
        in_window = (times >= start.timestamp()) & (times < end.timestamp())

        total = int(np.count_nonzero(in_window & (origin_in | destination_in)))
        hours = (end - start).total_seconds() / 3600

        return TrafficSummary(
            total=total,
            departures=int(np.count_nonzero(in_window & origin_in)),
            arrivals=int(np.count_nonzero(in_window & destination_in)),
            per_hour=round(total / hours, 1),
            window_hours=round(hours, 2),
        )

    def summarize_snapshot(
        self,
        flights: Sequence[FlightRecord],
        airports: Iterable[str],
    ) -> TrafficSummary:
        """Count relevant flights in a live snapshot, regardless of time."""
        reference = self._normalize_airports(airports)
        relevant = [f for f in flights if f.origin in reference or f.destination in reference]
        return TrafficSummary(
            total=len(relevant),
            departures=sum(1 for f in relevant if f.origin in reference),
            arrivals=sum(1 for f in relevant if f.destination in reference),
        )
