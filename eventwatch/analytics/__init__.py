"""
Analytics module for EventWatch.

Provides time-series aggregation of flight records using NumPy:
- Fixed-width bucketing of departures and arrivals
- Network-wide and per-airport series
- Per-hour traffic summaries
"""

from eventwatch.analytics.traffic_flow import (
    EventWindow,
    TimeBucket,
    TrafficAggregator,
    TrafficSummary,
)

__all__ = [
    'EventWindow',
    'TimeBucket',
    'TrafficAggregator',
    'TrafficSummary',
]
