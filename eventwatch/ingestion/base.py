"""
Shared HTTP plumbing for upstream JSON feeds.

Each call makes a single attempt bounded by an explicit timeout. Any
network, HTTP, or decoding failure surfaces as UpstreamUnavailable so the
caller can go straight to its stale fallback. Retries, if any, belong to
the scheduler that triggers refreshes.
"""

import logging
from typing import Any, Optional

import requests

from eventwatch.config import config
from eventwatch.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


class JsonFeedClient:
    """Base client: one timed GET returning decoded JSON."""

    source = 'upstream'

    def __init__(
        self,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        user_agent: Optional[str] = None,
    ):
        self.timeout = timeout if timeout is not None else config.upstream.timeout_seconds
        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/json',
            'User-Agent': user_agent or config.upstream.user_agent,
        })

    def _get_json(self, url: str, params: Optional[dict] = None) -> Any:
        """
        Fetch and decode a JSON document.

        Raises:
            UpstreamUnavailable on timeout, connection, HTTP, or decode errors
        """
        logger.debug(f'Fetching {self.source}: {url} params={params}')

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

        except requests.exceptions.Timeout:
            logger.error(f'{self.source} API timeout')
            raise UpstreamUnavailable(
                self.source, 'did not respond in time', timed_out=True
            )
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else '?'
            if status == 429:
                logger.warning(f'{self.source} rate limit exceeded')
            else:
                logger.error(f'{self.source} API error: {status}')
            raise UpstreamUnavailable(self.source, f'API returned {status}')
        except requests.exceptions.RequestException as e:
            logger.error(f'{self.source} request failed: {e}')
            raise UpstreamUnavailable(self.source, f'request failed: {e}')
        except ValueError as e:
            logger.error(f'{self.source} returned invalid JSON: {e}')
            raise UpstreamUnavailable(self.source, 'invalid JSON in response')
