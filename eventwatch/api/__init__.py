"""
API module for EventWatch.

Provides REST endpoints for:
- Live and historical flight data
- Events and event traffic
- System status
"""

from eventwatch.api.events import events_bp
from eventwatch.api.flights import flights_bp, statsim_bp
from eventwatch.api.metrics import metrics_bp

__all__ = ['events_bp', 'flights_bp', 'metrics_bp', 'statsim_bp']
