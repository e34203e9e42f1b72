"""
Metrics API endpoints.

Provides endpoints for:
- GET /api/metrics/status - Cache tiers, event store, and scheduler status
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify

from eventwatch.config import config

logger = logging.getLogger(__name__)

metrics_bp = Blueprint('metrics', __name__, url_prefix='/api/metrics')


@metrics_bp.route('/status', methods=['GET'])
def get_system_status():
    """
    Get system health and status information.

    Returns:
    - Cache statistics for every tier
    - Event store size and last persistence
    - Refresh scheduler status
    - Configuration info
    """
    services = current_app.config['SERVICES']
    scheduler = current_app.config.get('REFRESH_SCHEDULER')
    scheduler_stats = scheduler.stats if scheduler else {'running': False}

    return jsonify({
        'status': 'healthy' if scheduler_stats.get('running') else 'degraded',
        'caches': services.stats,
        'scheduler': scheduler_stats,
        'config': {
            'live_ttl_seconds': config.cache.live_ttl_seconds,
            'history_ttl_seconds': config.cache.history_ttl_seconds,
            'response_ttl_seconds': config.cache.response_ttl_seconds,
            'retention_hours': config.event_store.retention_hours,
            'lookahead_hours': config.event_store.lookahead_hours,
            'bucket_minutes': config.aggregation.bucket_minutes,
        },
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })
