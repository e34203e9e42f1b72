"""
Configuration management for EventWatch.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic numbers scattered
throughout the cache and aggregation code.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class UpstreamConfig:
    """VATSIM / STATSIM endpoint configuration."""
    vatsim_data_url: str = os.getenv(
        'VATSIM_DATA_URL', 'https://data.vatsim.net/v3/vatsim-data.json'
    )
    vatsim_events_url: str = os.getenv(
        'VATSIM_EVENTS_URL', 'https://my.vatsim.net/api/v2/events/latest'
    )
    statsim_base_url: str = os.getenv('STATSIM_BASE_URL', 'https://api.statsim.net')
    timeout_seconds: float = float(os.getenv('UPSTREAM_TIMEOUT_SECONDS', '10'))
    user_agent: str = 'VATSIM-Flight-Analyzer/2.0'


@dataclass(frozen=True)
class CacheConfig:
    """In-memory cache tiers."""
    # VATSIM refreshes pilots every 15 seconds
    live_ttl_seconds: int = int(os.getenv('LIVE_CACHE_TTL_SECONDS', '30'))

    # Historical data for a fixed range never changes
    history_ttl_seconds: int = int(os.getenv('HISTORY_CACHE_TTL_SECONDS', '600'))
    history_max_entries: int = int(os.getenv('HISTORY_CACHE_MAX_ENTRIES', '50'))

    # Merged event list served to clients
    response_ttl_seconds: int = int(os.getenv('RESPONSE_CACHE_TTL_SECONDS', '300'))


@dataclass(frozen=True)
class EventStoreConfig:
    """Disk-backed event cache settings."""
    retention_hours: int = int(os.getenv('EVENT_RETENTION_HOURS', '72'))
    lookahead_hours: int = int(os.getenv('EVENT_LOOKAHEAD_HOURS', '12'))
    cache_file: str = os.getenv('EVENT_CACHE_FILE', 'event-cache.json')
    refresh_interval_seconds: int = int(os.getenv('EVENT_REFRESH_INTERVAL_SECONDS', '600'))
    initial_refresh_delay_seconds: int = 10


@dataclass(frozen=True)
class AggregationConfig:
    """Traffic flow bucketing settings."""
    bucket_minutes: int = int(os.getenv('BUCKET_MINUTES', '10'))
    event_margin_minutes: int = int(os.getenv('EVENT_MARGIN_MINUTES', '30'))


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    upstream: UpstreamConfig
    cache: CacheConfig
    event_store: EventStoreConfig
    aggregation: AggregationConfig

    # Flask settings
    cors_origin: str
    debug: bool


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        upstream=UpstreamConfig(),
        cache=CacheConfig(),
        event_store=EventStoreConfig(),
        aggregation=AggregationConfig(),
        cors_origin=os.getenv('CORS_ORIGIN', 'http://localhost:3000'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
    )


# Singleton instance
config = load_config()
