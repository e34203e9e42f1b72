"""
Event API endpoints.

Provides endpoints for:
- GET /api/events - Live, upcoming, and cached past events
- GET /api/events/<id> - Single event with its current status
- GET /api/events/<id>/traffic - Traffic flow and statistics for an event
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from eventwatch.errors import EventNotFound

logger = logging.getLogger(__name__)

events_bp = Blueprint('events', __name__, url_prefix='/api/events')


@events_bp.route('', methods=['GET'])
def list_events():
    """
    List all known events.

    Live events from VATSIM merged with past events from the local cache.
    The merged list is cached for 5 minutes; if VATSIM is down the last
    known list (or the local cache alone) is served instead of an error.
    """
    start_time = time.perf_counter()
    services = current_app.config['SERVICES']

    listing = services.reconciler.get_events()

    result = listing.to_dict()
    result['meta']['query_time_ms'] = round((time.perf_counter() - start_time) * 1000, 2)
    return jsonify(result)


@events_bp.route('/<int:event_id>', methods=['GET'])
def get_event(event_id: int):
    """Get a single event by id."""
    services = current_app.config['SERVICES']

    event = services.reconciler.find_event(event_id)
    if event is None:
        raise EventNotFound(event_id)

    result = event.to_dict()
    result['status'] = event.status(services.clock()).value
    return jsonify(result)


@events_bp.route('/<int:event_id>/traffic', methods=['GET'])
def get_event_traffic(event_id: int):
    """
    Get traffic flow for an event.

    Returns 10-minute buckets of departures/arrivals for the event
    airports (combined and per airport), a per-hour summary, and for
    live or upcoming events a snapshot of current traffic.
    """
    start_time = time.perf_counter()
    services = current_app.config['SERVICES']

    traffic = services.event_traffic.event_traffic(event_id)

    result = traffic.to_dict()
    result['query_time_ms'] = round((time.perf_counter() - start_time) * 1000, 2)
    return jsonify(result)
