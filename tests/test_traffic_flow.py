"""Tests for the NumPy traffic flow aggregator."""

from datetime import timedelta
from types import SimpleNamespace

import pytest

from eventwatch.analytics import TrafficAggregator
from eventwatch.errors import InvalidQueryWindow
from eventwatch.models import EventStatus
from tests.conftest import NOW, make_event, make_flight


@pytest.fixture
def aggregator() -> TrafficAggregator:
    return TrafficAggregator(bucket_minutes=10, margin_minutes=30)


def minutes(n: float):
    return NOW + timedelta(minutes=n)


class TestBucketGrid:
    """Test cases for bucket_starts."""

    def test_one_hour_is_six_buckets(self, aggregator: TrafficAggregator) -> None:
        starts = aggregator.bucket_starts(NOW, minutes(60))

        assert len(starts) == 6
        assert starts[0] == NOW
        assert starts[-1] == minutes(50)

    def test_unaligned_start_is_floored(self, aggregator: TrafficAggregator) -> None:
        starts = aggregator.bucket_starts(minutes(5), minutes(65))

        assert starts[0] == NOW
        assert starts[-1] == minutes(60)
        assert len(starts) == 7

    def test_buckets_are_contiguous(self, aggregator: TrafficAggregator) -> None:
        starts = aggregator.bucket_starts(minutes(3), minutes(247))
        gaps = {b - a for a, b in zip(starts, starts[1:])}
        assert gaps == {timedelta(minutes=10)}

    @pytest.mark.parametrize('end_offset', [0, -10])
    def test_empty_or_inverted_window_rejected(self, aggregator: TrafficAggregator, end_offset: int) -> None:
        with pytest.raises(InvalidQueryWindow):
            aggregator.bucket_starts(NOW, minutes(end_offset))


class TestAggregate:
    """Test cases for aggregate."""

    def test_counts_departures_and_arrivals(self, aggregator: TrafficAggregator) -> None:
        flights = [
            make_flight('OUT1', 'EDDF', 'EGLL', minutes(1)),
            make_flight('OUT2', 'EDDF', 'LFPG', minutes(9)),
            make_flight('IN1', 'EGLL', 'EDDF', minutes(12)),
            make_flight('OTHER', 'EGLL', 'LFPG', minutes(12)),
        ]

        buckets = aggregator.aggregate(flights, ['EDDF'], NOW, minutes(30))

        assert [(b.departures, b.arrivals, b.total) for b in buckets] == [
            (2, 0, 2),
            (0, 1, 1),
            (0, 0, 0),
        ]

    def test_arrival_only_flight(self, aggregator: TrafficAggregator) -> None:
        start = NOW.replace(hour=14)
        flights = [make_flight('BAW7', 'EGLL', 'EDDF', start + timedelta(minutes=7))]

        buckets = aggregator.aggregate(flights, ['EDDF'], start, start + timedelta(minutes=20))

        assert buckets[0].label == '14:00'
        assert (buckets[0].arrivals, buckets[0].departures, buckets[0].total) == (1, 0, 1)
        assert buckets[1].total == 0

    def test_flight_inside_set_at_both_ends_counts_once(self, aggregator: TrafficAggregator) -> None:
        flights = [make_flight('DLH1', 'EDDF', 'EDDM', minutes(5))]

        bucket = aggregator.aggregate(flights, ['EDDF', 'EDDM'], NOW, minutes(10))[0]

        assert bucket.departures == 1
        assert bucket.arrivals == 1
        assert bucket.total == 1

    def test_window_is_half_open(self, aggregator: TrafficAggregator) -> None:
        flights = [
            make_flight('AT_START', departed=NOW),
            make_flight('AT_END', departed=minutes(60)),
            make_flight('BEFORE', departed=minutes(-1)),
        ]

        buckets = aggregator.aggregate(flights, ['EDDF'], NOW, minutes(60))

        assert sum(b.total for b in buckets) == 1
        assert buckets[0].total == 1

    def test_flights_without_departure_are_ignored(self, aggregator: TrafficAggregator) -> None:
        flights = [make_flight('GROUND', departed=None), make_flight('AIR', departed=minutes(2))]

        buckets = aggregator.aggregate(flights, ['EDDF'], NOW, minutes(10))

        assert buckets[0].total == 1
        assert aggregator.last_skipped == 0

    def test_unreadable_records_are_skipped(self, aggregator: TrafficAggregator) -> None:
        flights = [
            make_flight('GOOD', departed=minutes(2)),
            SimpleNamespace(departed='18:02', origin='EDDF', destination='EGLL'),
            object(),
        ]

        buckets = aggregator.aggregate(flights, ['EDDF'], NOW, minutes(10))

        assert buckets[0].total == 1
        assert aggregator.last_skipped == 2

    def test_empty_input_gives_zero_buckets(self, aggregator: TrafficAggregator) -> None:
        buckets = aggregator.aggregate([], ['EDDF'], NOW, minutes(60))

        assert len(buckets) == 6
        assert all(b.total == 0 for b in buckets)

    def test_airport_codes_are_normalized(self, aggregator: TrafficAggregator) -> None:
        flights = [make_flight('DLH1', 'EDDF', 'EGLL', minutes(1))]

        buckets = aggregator.aggregate(flights, [' eddf '], NOW, minutes(10))

        assert buckets[0].departures == 1

    def test_data_end_clamps_counts_not_grid(self, aggregator: TrafficAggregator) -> None:
        flights = [
            make_flight('PAST', departed=minutes(5)),
            make_flight('FUTURE', departed=minutes(25)),
        ]

        buckets = aggregator.aggregate(flights, ['EDDF'], NOW, minutes(60), data_end=minutes(20))

        assert len(buckets) == 6
        assert [b.total for b in buckets] == [1, 0, 0, 0, 0, 0]

    def test_bucket_labels(self, aggregator: TrafficAggregator) -> None:
        buckets = aggregator.aggregate([], ['EDDF'], NOW, minutes(20))

        assert [b.label for b in buckets] == ['18:00', '18:10']
        assert buckets[1].to_dict() == {
            'time': '18:10',
            'start': '2026-03-14T18:10:00Z',
            'departures': 0,
            'arrivals': 0,
            'total': 0,
        }

    def test_per_airport_series(self, aggregator: TrafficAggregator) -> None:
        flights = [
            make_flight('A', 'EDDF', 'EDDM', minutes(1)),
            make_flight('B', 'EDDM', 'EGLL', minutes(11)),
        ]

        series = aggregator.aggregate_per_airport(flights, ['eddm', 'EDDF'], NOW, minutes(20))

        assert list(series) == ['EDDF', 'EDDM']
        assert [b.departures for b in series['EDDF']] == [1, 0]
        assert [b.arrivals for b in series['EDDM']] == [1, 0]
        assert [b.departures for b in series['EDDM']] == [0, 1]

    def test_bucket_totals_match_summary(self, aggregator: TrafficAggregator) -> None:
        flights = [
            make_flight(f'F{i}', 'EDDF' if i % 2 else 'EGLL', 'EDDF' if i % 3 else 'LFPG', minutes(i * 7))
            for i in range(30)
        ]

        buckets = aggregator.aggregate(flights, ['EDDF'], NOW, minutes(120))
        summary = aggregator.summarize(flights, ['EDDF'], NOW, minutes(120))

        assert sum(b.total for b in buckets) == summary.total
        assert sum(b.departures for b in buckets) == summary.departures
        assert sum(b.arrivals for b in buckets) == summary.arrivals


class TestSummaries:
    """Test cases for summarize and summarize_snapshot."""

    def test_per_hour_rate(self, aggregator: TrafficAggregator) -> None:
        flights = [make_flight(f'F{i}', departed=minutes(i * 20)) for i in range(12)]

        summary = aggregator.summarize(flights, ['EDDF'], NOW, minutes(240))

        assert summary.total == 12
        assert summary.per_hour == 3.0
        assert summary.window_hours == 4.0

    def test_per_hour_is_rounded(self, aggregator: TrafficAggregator) -> None:
        flights = [make_flight(f'F{i}', departed=minutes(i)) for i in range(10)]

        summary = aggregator.summarize(flights, ['EDDF'], NOW, minutes(180))

        assert summary.per_hour == 3.3

    def test_summarize_rejects_empty_window(self, aggregator: TrafficAggregator) -> None:
        with pytest.raises(InvalidQueryWindow):
            aggregator.summarize([], ['EDDF'], NOW, NOW)

    def test_snapshot_summary_ignores_time(self, aggregator: TrafficAggregator) -> None:
        flights = [
            make_flight('A', 'EDDF', 'EGLL'),
            make_flight('B', 'LFPG', 'EDDF'),
            make_flight('C', 'LFPG', 'EGLL'),
        ]

        summary = aggregator.summarize_snapshot(flights, ['EDDF'])

        assert (summary.total, summary.departures, summary.arrivals) == (2, 1, 1)
        assert summary.per_hour is None


class TestEventWindow:
    """Test cases for event_window."""

    def test_past_event(self, aggregator: TrafficAggregator) -> None:
        event = make_event(1, start=NOW - timedelta(hours=5), hours=2)

        window = aggregator.event_window(event, NOW)

        assert window.status == EventStatus.PAST
        assert window.query_start == event.start_time - timedelta(minutes=30)
        assert window.history_end == event.end_time + timedelta(minutes=30)
        assert window.data_end == window.timeline_end == window.history_end
        assert window.needs_history

    def test_live_event_clamps_to_now(self, aggregator: TrafficAggregator) -> None:
        event = make_event(1, start=NOW - timedelta(hours=1), hours=3)
        now = NOW + timedelta(seconds=42)

        window = aggregator.event_window(event, now)

        assert window.status == EventStatus.LIVE
        assert window.history_end == NOW
        assert window.data_end == now
        assert window.timeline_end == event.end_time + timedelta(minutes=30)

    def test_upcoming_event_needs_no_history(self, aggregator: TrafficAggregator) -> None:
        event = make_event(1, start=NOW + timedelta(hours=2))

        window = aggregator.event_window(event, NOW)

        assert window.status == EventStatus.UPCOMING
        assert not window.needs_history

    def test_zero_margin_uses_event_bounds(self) -> None:
        event = make_event(1, start=NOW - timedelta(hours=5), hours=2)

        window = TrafficAggregator(bucket_minutes=10, margin_minutes=0).event_window(event, NOW)

        assert window.query_start == event.start_time
        assert window.history_end == event.end_time


class TestConstruction:
    """Test cases for TrafficAggregator settings."""

    @pytest.mark.parametrize('kwargs', [
        {'bucket_minutes': 0},
        {'bucket_minutes': -10},
        {'margin_minutes': -1},
    ])
    def test_invalid_settings_rejected(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            TrafficAggregator(**kwargs)
