"""Tests for FlightDataService cache tiers and input validation."""

from datetime import timedelta

import pytest

from eventwatch.cache import TTLCache
from eventwatch.errors import InvalidQueryWindow, UpstreamUnavailable
from eventwatch.services import FlightDataService, parse_window, validate_airport_code
from tests.conftest import NOW, FakeClock, FakeGateway, make_flight


@pytest.fixture
def service(gateway: FakeGateway, clock: FakeClock) -> FlightDataService:
    return FlightDataService(
        gateway,
        live_cache=TTLCache(ttl_seconds=30, name='live', clock=clock),
        history_cache=TTLCache(ttl_seconds=600, max_entries=50, name='history', clock=clock),
        clock=clock,
    )


class TestValidation:
    """Inputs are rejected before any cache or upstream work."""

    @pytest.mark.parametrize('value, expected', [('EDDF', 'EDDF'), (' eddf ', 'EDDF')])
    def test_valid_airport_codes(self, value: str, expected: str) -> None:
        assert validate_airport_code(value) == expected

    @pytest.mark.parametrize('value', [None, '', 'EDD', 'EDDFX', 'ED1F', 'ED F'])
    def test_invalid_airport_codes(self, value) -> None:
        with pytest.raises(InvalidQueryWindow) as exc_info:
            validate_airport_code(value)
        assert exc_info.value.field == 'icao'

    def test_parse_window(self) -> None:
        start, end = parse_window('2026-03-14T18:00:00Z', '2026-03-14T19:00:00Z')
        assert end - start == timedelta(hours=1)

    @pytest.mark.parametrize('from_value, to_value', [
        (None, '2026-03-14T19:00:00Z'),
        ('2026-03-14T18:00:00Z', None),
        ('garbage', '2026-03-14T19:00:00Z'),
        ('2026-03-14T18:00:00Z', '2026-03-14T18:00:00Z'),
        ('2026-03-14T19:00:00Z', '2026-03-14T18:00:00Z'),
    ])
    def test_parse_window_rejects(self, from_value, to_value) -> None:
        with pytest.raises(InvalidQueryWindow):
            parse_window(from_value, to_value)

    def test_invalid_code_does_not_touch_upstream(self, service: FlightDataService, gateway: FakeGateway) -> None:
        with pytest.raises(InvalidQueryWindow):
            service.live_flights('XX')
        assert gateway.live_calls == 0

    def test_invalid_window_does_not_touch_upstream(self, service: FlightDataService, gateway: FakeGateway) -> None:
        with pytest.raises(InvalidQueryWindow):
            service.historical_flights(NOW, NOW)
        assert gateway.history_calls == []


class TestLiveFlights:
    """Live snapshot tier."""

    def test_filters_snapshot_by_airport(self, service: FlightDataService, gateway: FakeGateway) -> None:
        gateway.snapshot = [
            make_flight('A', 'EDDF', 'EGLL'),
            make_flight('B', 'EGLL', 'EDDF'),
            make_flight('C', 'LFPG', 'EGLL'),
        ]

        assert [f.callsign for f in service.live_flights('eddf')] == ['A', 'B']
        assert [f.callsign for f in service.live_flights('LFPG')] == ['C']
        assert gateway.live_calls == 1

    def test_refetches_after_ttl(self, service: FlightDataService, gateway: FakeGateway, clock: FakeClock) -> None:
        service.live_snapshot()
        clock.advance(seconds=29)
        service.live_snapshot()
        assert gateway.live_calls == 1

        clock.advance(seconds=1)
        service.live_snapshot()
        assert gateway.live_calls == 2

    def test_stale_snapshot_on_failure(self, service: FlightDataService, gateway: FakeGateway, clock: FakeClock) -> None:
        gateway.snapshot = [make_flight('A')]
        service.live_snapshot()

        clock.advance(minutes=10)
        gateway.fail_live = True
        gateway.snapshot = []

        assert [f.callsign for f in service.live_snapshot()] == ['A']

    def test_failure_without_cache_raises(self, service: FlightDataService, gateway: FakeGateway) -> None:
        gateway.fail_live = True
        with pytest.raises(UpstreamUnavailable):
            service.live_flights('EDDF')

    def test_empty_snapshot_is_a_valid_result(self, service: FlightDataService, gateway: FakeGateway) -> None:
        assert service.live_flights('EDDF') == []


class TestHistoricalFlights:
    """Historical range tier."""

    def test_same_range_is_served_from_cache(
        self, service: FlightDataService, gateway: FakeGateway, clock: FakeClock
    ) -> None:
        gateway.history = [make_flight('A', departed=NOW)]
        end = NOW + timedelta(hours=1)

        service.historical_flights(NOW, end)
        clock.advance(minutes=9)
        flights = service.historical_flights(NOW, end)

        assert len(gateway.history_calls) == 1
        assert [f.callsign for f in flights] == ['A']

    def test_different_ranges_are_cached_separately(self, service: FlightDataService, gateway: FakeGateway) -> None:
        service.historical_flights(NOW, NOW + timedelta(hours=1))
        service.historical_flights(NOW, NOW + timedelta(hours=2))

        assert len(gateway.history_calls) == 2
        assert len(service.history_cache) == 2

    def test_stale_range_on_failure(self, service: FlightDataService, gateway: FakeGateway, clock: FakeClock) -> None:
        gateway.history = [make_flight('A', departed=NOW)]
        end = NOW + timedelta(hours=1)
        service.historical_flights(NOW, end)

        clock.advance(hours=1)
        gateway.fail_history = True

        assert [f.callsign for f in service.historical_flights(NOW, end)] == ['A']

    def test_uncached_range_failure_raises(self, service: FlightDataService, gateway: FakeGateway) -> None:
        gateway.fail_history = True

        with pytest.raises(UpstreamUnavailable) as exc_info:
            service.historical_flights(NOW, NOW + timedelta(hours=1))
        assert exc_info.value.timed_out

    def test_stats_cover_both_tiers(self, service: FlightDataService) -> None:
        stats = service.stats
        assert stats['live']['ttl_seconds'] == 30
        assert stats['history']['max_entries'] == 50
