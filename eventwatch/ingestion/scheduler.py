"""
Refresh scheduler - drives periodic event refresh from outside the core.

The Reconciler only exposes on-demand refresh(). This scheduler calls it
on a fixed interval from a daemon thread so concluded events are captured
into the EventStore even when nobody is requesting /api/events.

Schedule:
- first run after a short delay, to let the server start
- then every refresh interval (10 minutes by default)
"""

import logging
import threading
import time
from typing import Callable, Optional

from eventwatch.config import config

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """
    Runs a refresh callable on a fixed interval in a background thread.

    Failures are logged and counted; the next tick simply tries again.
    """

    def __init__(
        self,
        refresh: Callable[[], object],
        interval: Optional[float] = None,
        initial_delay: Optional[float] = None,
    ):
        self._refresh = refresh
        self.interval = (
            interval if interval is not None
            else config.event_store.refresh_interval_seconds
        )
        self.initial_delay = (
            initial_delay if initial_delay is not None
            else config.event_store.initial_refresh_delay_seconds
        )

        # State tracking
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._run_count = 0
        self._error_count = 0
        self._last_run_time: float = 0

    def run_once(self) -> bool:
        """Execute one refresh. Returns False if it raised."""
        try:
            self._refresh()
            self._run_count += 1
            self._last_run_time = time.time()
            return True
        except Exception as e:
            self._error_count += 1
            logger.error(f'Scheduled refresh failed: {e}')
            return False

    def run_continuous(self) -> None:
        """
        Run the refresh loop until stopped.

        This method blocks - use start_background() for non-blocking.
        """
        logger.info(f'Starting scheduled event refresh (interval={self.interval}s)')

        if self._stop_event.wait(self.initial_delay):
            return

        while not self._stop_event.is_set():
            logger.info('Scheduled event refresh')
            self.run_once()
            self._stop_event.wait(self.interval)

        logger.info('Scheduled refresh stopped')

    def start_background(self) -> None:
        """Start the refresh loop in a background thread."""
        if self._thread and self._thread.is_alive():
            logger.warning('Refresh scheduler already running')
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_continuous,
            name='event-refresh',
            daemon=True,
        )
        self._thread.start()
        logger.info('Background event refresh started')

    def stop(self) -> None:
        """Stop the background loop."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
        logger.info('Refresh scheduler stopped')

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    @property
    def stats(self) -> dict:
        """Get scheduler statistics."""
        return {
            'run_count': self._run_count,
            'error_count': self._error_count,
            'last_run_time': self._last_run_time,
            'interval_seconds': self.interval,
            'running': self.running,
        }
