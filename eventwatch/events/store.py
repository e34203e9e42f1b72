"""
EventStore - disk-backed cache of individual events.

The VATSIM events feed only returns live and upcoming events; once an event
ends it disappears upstream. This store keeps every event we have seen for
the retention window so concluded events stay visible.

Policies:
- Candidate: an event is cached once it has started or will start within
  the look-ahead horizon (12h). Events further out are left to the feed.
- Freeze: a cached event is refreshed only while it has not concluded.
  After the end time the cached snapshot is treated as historical.
- Retention: entries are purged when ``now - cached_at`` exceeds the
  retention window (72h). ``cached_at`` is when we first added the event,
  not when the event ran, so upcoming events cached early still expire.

Persistence:
    Flat JSON object, one key per event id:
        {"12345": {"event": {...upstream shape...}, "cached_at": "...Z"}}
    Written through on every mutating sync/sweep, not on every upsert.
    A missing, empty, or corrupt file starts an empty store.

All mutation happens under a single lock so a sweep-then-write cycle never
observes a torn state. Readers get snapshots taken under the same lock.
"""

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from eventwatch.config import config
from eventwatch.errors import MalformedPersistedState
from eventwatch.models import EventRecord
from eventwatch.timeutils import Clock, format_timestamp, parse_timestamp, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredEvent:
    """An event plus the time it was first cached."""
    event: EventRecord
    cached_at: datetime

    def to_dict(self) -> dict:
        return {
            'event': self.event.to_dict(),
            'cached_at': format_timestamp(self.cached_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'StoredEvent':
        """Parse a persisted entry. Accepts the legacy 'timestamp' key."""
        if not isinstance(data, dict):
            raise ValueError('entry must be an object')
        cached_at = parse_timestamp(data.get('cached_at') or data.get('timestamp'))
        if cached_at is None:
            raise ValueError('entry has no cached_at')
        return cls(event=EventRecord.from_dict(data.get('event')), cached_at=cached_at)


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one ingest + sweep cycle."""
    added: List[int]
    updated: List[int]
    removed: List[int]
    saved: bool

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated or self.removed)


class EventStore:
    """
    Thread-safe, file-backed event cache keyed by event id.

    Usage:
        store = EventStore('event-cache.json')
        store.load()
        store.sync(live_events)
    """

    def __init__(
        self,
        path: Union[str, Path, None] = None,
        retention_hours: Optional[float] = None,
        lookahead_hours: Optional[float] = None,
        clock: Clock = utc_now,
    ):
        self.path = Path(path or config.event_store.cache_file)
        self.retention = timedelta(
            hours=retention_hours if retention_hours is not None else config.event_store.retention_hours
        )
        self.lookahead = timedelta(
            hours=lookahead_hours if lookahead_hours is not None else config.event_store.lookahead_hours
        )
        self._clock = clock

        self._entries: Dict[int, StoredEvent] = {}
        self._lock = threading.RLock()

        # Statistics
        self._last_sync: Optional[datetime] = None
        self._last_save: Optional[datetime] = None

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------

    def is_candidate(self, event: EventRecord, now: Optional[datetime] = None) -> bool:
        """Whether an event has started or starts within the look-ahead horizon."""
        now = now or self._clock()
        return event.start_time <= now + self.lookahead

    def upsert(self, event: EventRecord, now: Optional[datetime] = None) -> bool:
        """
        Insert an event, or refresh it if it has not concluded.

        Keeps the original cached_at on refresh. Returns True if the
        stored state changed.
        """
        now = now or self._clock()

        with self._lock:
            existing = self._entries.get(event.id)

            if existing is None:
                self._entries[event.id] = StoredEvent(event=event, cached_at=now)
                status = 'LIVE/PAST' if event.has_started(now) else 'UPCOMING'
                logger.info(f'Cached event: {event.name} ({event.id}) - {status}')
                return True

            if event.has_concluded(now):
                # Concluded events are frozen at their last live snapshot
                return False

            if existing.event == event:
                return False

            self._entries[event.id] = StoredEvent(event=event, cached_at=existing.cached_at)
            logger.debug(f'Refreshed cached event {event.id}')
            return True

    def ingest(self, events: Iterable[EventRecord], now: Optional[datetime] = None) -> SyncResult:
        """
        Apply the candidate policy and upsert each event.

        New events outside the look-ahead horizon are skipped; events
        already cached are always offered to upsert().
        """
        now = now or self._clock()
        added: List[int] = []
        updated: List[int] = []

        with self._lock:
            for event in events:
                known = event.id in self._entries
                if not known and not self.is_candidate(event, now):
                    continue
                if self.upsert(event, now):
                    (updated if known else added).append(event.id)

        return SyncResult(added=added, updated=updated, removed=[], saved=False)

    # -------------------------------------------------------------------------
    # Retention
    # -------------------------------------------------------------------------

    def _sweep_locked(self, now: datetime) -> List[int]:
        removed = []
        for event_id, entry in list(self._entries.items()):
            if now - entry.cached_at > self.retention:
                del self._entries[event_id]
                removed.append(event_id)
                logger.info(f'Removed old cached event: {event_id}')
        return removed

    def sweep(self, now: Optional[datetime] = None) -> List[int]:
        """
        Delete entries older than the retention window.

        Writes through to disk if anything was removed. Returns the
        removed ids.
        """
        now = now or self._clock()
        with self._lock:
            removed = self._sweep_locked(now)
            if removed:
                self._save_locked()
        return removed

    def sync(self, events: Iterable[EventRecord], now: Optional[datetime] = None) -> SyncResult:
        """
        Run one full cache cycle: ingest, sweep, persist.

        The whole cycle holds the mutation lock. The file is rewritten only
        when the cycle changed something.
        """
        now = now or self._clock()

        with self._lock:
            ingested = self.ingest(events, now)
            removed = self._sweep_locked(now)
            changed = bool(ingested.changed or removed)
            result = SyncResult(
                added=ingested.added,
                updated=ingested.updated,
                removed=removed,
                saved=self._save_locked() if changed else False,
            )
            self._last_sync = now

        logger.info(
            f'Event cache updated: {len(self)} events total '
            f'(+{len(result.added)} new, {len(result.updated)} refreshed, '
            f'-{len(result.removed)} expired)'
        )
        return result

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _read_file(self) -> Dict[int, StoredEvent]:
        """
        Read and parse the cache file.

        Raises MalformedPersistedState if the file is unreadable or is not
        a JSON object. Individual bad entries are skipped.
        """
        if not self.path.exists():
            logger.info(f'No event cache file at {self.path}, starting with fresh cache')
            return {}

        try:
            content = self.path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise MalformedPersistedState(str(self.path), f'unreadable: {e}')

        if not content.strip():
            logger.info('Event cache file is empty, starting with fresh cache')
            return {}

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise MalformedPersistedState(str(self.path), f'invalid JSON: {e}')

        if not isinstance(data, dict):
            raise MalformedPersistedState(str(self.path), 'top level is not an object')

        entries: Dict[int, StoredEvent] = {}
        for key, value in data.items():
            try:
                entry = StoredEvent.from_dict(value)
                if int(key) != entry.event.id:
                    raise ValueError(f'key does not match event id {entry.event.id}')
                entries[entry.event.id] = entry
            except (TypeError, ValueError) as e:
                logger.warning(f'Skipping malformed cached event {key!r}: {e}')
        return entries

    def load(self) -> int:
        """
        Load entries from disk, replacing the in-memory state.

        Never raises for file problems: a corrupt file is logged and the
        store starts empty. Returns the number of entries loaded.
        """
        try:
            entries = self._read_file()
        except MalformedPersistedState as e:
            logger.error(f'Error loading event cache from file: {e}')
            logger.info('Starting with fresh cache')
            entries = {}

        with self._lock:
            self._entries = entries

        if entries:
            logger.info(f'Loaded {len(entries)} cached events from file')
        return len(entries)

    def _save_locked(self) -> bool:
        payload = {
            str(event_id): entry.to_dict()
            for event_id, entry in self._entries.items()
        }

        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.path.parent),
                prefix=f'.{self.path.name}.',
                suffix='.tmp',
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f'Error saving event cache to file: {e}')
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            return False

        self._last_save = self._clock()
        logger.debug(f'Saved {len(payload)} events to cache file')
        return True

    def save(self) -> bool:
        """
        Write the full entry set to disk atomically.

        Write failures are logged and reported as False, never raised.
        """
        with self._lock:
            return self._save_locked()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, event_id: int) -> Optional[StoredEvent]:
        with self._lock:
            return self._entries.get(event_id)

    def snapshot(self) -> List[StoredEvent]:
        """Consistent copy of all entries, in insertion order."""
        with self._lock:
            return list(self._entries.values())

    def events(self) -> List[EventRecord]:
        return [entry.event for entry in self.snapshot()]

    def ids(self) -> List[int]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, event_id: int) -> bool:
        with self._lock:
            return event_id in self._entries

    @property
    def stats(self) -> dict:
        """Get store statistics."""
        with self._lock:
            return {
                'entries': len(self._entries),
                'path': str(self.path),
                'retention_hours': self.retention.total_seconds() / 3600,
                'lookahead_hours': self.lookahead.total_seconds() / 3600,
                'last_sync': format_timestamp(self._last_sync),
                'last_save': format_timestamp(self._last_save),
            }
