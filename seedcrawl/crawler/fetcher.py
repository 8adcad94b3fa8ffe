"""
Load-time measurement for seed URLs.
"""

import asyncio
import logging
import time
from typing import Dict, Optional

import aiohttp
from aiohttp import ClientError, ClientSession, ClientTimeout

from .errors import HTTPStatusError, NetworkError


class FetchTimer:
    """
    Issues a single GET per URL and measures how long the server takes to
    answer with response headers.

    The measurement is advisory: the body is discarded and nothing is
    retried. Each request carries a total deadline so a stalled server
    cannot hold the caller's admission slot forever.
    """

    def __init__(self, user_agent: str, request_timeout: float = 30,
                 max_connections: int = 10):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_connections = max_connections

        self.logger = logging.getLogger(__name__)
        self.session: Optional[ClientSession] = None

        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'status_errors': 0
        }

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        """Open the HTTP session."""
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=ClientTimeout(total=self.request_timeout),
                headers={'User-Agent': self.user_agent},
                connector=aiohttp.TCPConnector(limit=self.max_connections)
            )
            self.logger.debug("FetchTimer session started")

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("FetchTimer session closed")

    async def time_fetch(self, url: str) -> float:
        """
        Fetch a URL once and time it.

        Args:
            url: The URL to fetch

        Returns:
            Seconds elapsed between issuing the request and receiving headers

        Raises:
            NetworkError: on transport failure or timeout
            HTTPStatusError: when the response status is not 200
        """
        if self.session is None:
            await self.start()

        self.stats['total_requests'] += 1
        start_time = time.perf_counter()

        try:
            async with self.session.get(url) as response:
                elapsed = time.perf_counter() - start_time
                status = response.status
                response.release()
        except asyncio.TimeoutError as e:
            self.stats['failed_requests'] += 1
            self.logger.warning(f"Timeout fetching {url}")
            raise NetworkError(f"request timed out after {self.request_timeout}s") from e
        except (ClientError, ValueError) as e:
            # aiohttp reports unusable URLs as ValueError subclasses
            self.stats['failed_requests'] += 1
            self.logger.warning(f"Client error fetching {url}: {e}")
            raise NetworkError(str(e) or type(e).__name__) from e

        if status != 200:
            self.stats['failed_requests'] += 1
            self.stats['status_errors'] += 1
            self.logger.info(f"{url} answered with HTTP {status}")
            raise HTTPStatusError(status)

        self.stats['successful_requests'] += 1
        self.logger.debug(f"Timed {url}: {elapsed:.3f}s")
        return elapsed

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()

    def reset_stats(self):
        """Reset statistics counters."""
        for key in self.stats:
            self.stats[key] = 0
