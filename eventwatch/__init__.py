"""
EventWatch Package.

Cached, aggregated view of VATSIM network events and the traffic they
generate, built with Flask, requests, and NumPy.

Modules:
    api/         REST endpoints for flights, events, traffic, and system status
    models/      Immutable records parsed from upstream JSON (flights, events)
    ingestion/   VATSIM / STATSIM clients and the periodic refresh scheduler
    events/      Disk-backed event store and live/cached event reconciliation
    analytics/   NumPy-based traffic-flow bucketing
    services/    Cache-fronted flight data and event traffic orchestration
    cache.py     Thread-safe TTL caches with stale fallback
    config.py    Centralized configuration from environment variables
    errors.py    Error taxonomy shared by the core and the HTTP layer
"""

__version__ = '2.0.0'
