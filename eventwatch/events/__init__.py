"""
Event caching module for EventWatch.

Keeps concluded events visible after the live feed drops them, and merges
them with fresh data into one list.
"""

from eventwatch.events.reconciler import EventListing, Reconciler, merge_events
from eventwatch.events.store import EventStore, StoredEvent, SyncResult

__all__ = [
    'EventListing',
    'EventStore',
    'Reconciler',
    'StoredEvent',
    'SyncResult',
    'merge_events',
]
