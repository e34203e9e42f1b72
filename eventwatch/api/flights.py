"""
Flight data API endpoints.

Provides endpoints for:
- GET /api/flights?icao=EDDF - Live flights departing from or arriving at an airport
- GET /api/statsim/flights/dates?from=...&to=... - Historical flights in a time range
"""

import logging
import time

from flask import Blueprint, current_app, jsonify, request

from eventwatch.services import parse_window

logger = logging.getLogger(__name__)

flights_bp = Blueprint('flights', __name__, url_prefix='/api/flights')
statsim_bp = Blueprint('statsim', __name__, url_prefix='/api/statsim')


@flights_bp.route('', methods=['GET'])
def list_live_flights():
    """
    List live flights for one airport.

    Query parameters:
    - icao: 4-letter ICAO airport code (required)

    Served from the 30s live snapshot cache; falls back to the last
    snapshot if VATSIM is unreachable.
    """
    start_time = time.perf_counter()
    services = current_app.config['SERVICES']

    flights = services.flight_data.live_flights(request.args.get('icao', ''))

    query_time_ms = (time.perf_counter() - start_time) * 1000
    logger.debug(f'Live flights query took {query_time_ms:.2f}ms')

    return jsonify([flight.to_live_dict() for flight in flights])


@statsim_bp.route('/flights/dates', methods=['GET'])
def list_historical_flights():
    """
    List historical flights logged in a time range.

    Query parameters:
    - from: ISO 8601 start (required)
    - to: ISO 8601 end, after from (required)

    Results are cached for 10 minutes per (from, to) pair.
    """
    services = current_app.config['SERVICES']

    start, end = parse_window(request.args.get('from'), request.args.get('to'))
    flights = services.flight_data.historical_flights(start, end)

    return jsonify([flight.to_history_dict() for flight in flights])
