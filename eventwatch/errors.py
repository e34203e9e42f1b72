"""
Error taxonomy for EventWatch.

Policy: degraded-but-available. Upstream failures are recovered through
stale cache fallback wherever a prior value exists; only validation errors
fail fast, before any cache or upstream interaction.
"""

from typing import Optional


class EventWatchError(Exception):
    """Base class for all EventWatch errors."""


class UpstreamUnavailable(EventWatchError):
    """
    An upstream fetch failed or timed out.

    Distinct from "no data": callers receive this only when no stale
    value exists to fall back on.
    """

    def __init__(self, source: str, message: str, timed_out: bool = False):
        super().__init__(f'{source}: {message}')
        self.source = source
        self.message = message
        self.timed_out = timed_out


class MalformedPersistedState(EventWatchError):
    """The event cache file could not be read or parsed."""

    def __init__(self, path: str, reason: str):
        super().__init__(f'{path}: {reason}')
        self.path = path
        self.reason = reason


class InvalidQueryWindow(EventWatchError):
    """A query window or airport code was rejected before lookup."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class EventNotFound(EventWatchError):
    """No event with the requested id is live or cached."""

    def __init__(self, event_id: int):
        super().__init__(f'Event {event_id} not found')
        self.event_id = event_id
