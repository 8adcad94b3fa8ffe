"""
Asynchronous page collector that seed URLs are handed off to after timing.

The engine runs its own worker concurrency, independent of the dispatcher's
admission gate, and reports back through two callbacks: one for a scraped
page and one for a failed page. Exactly one of them fires per visit.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Set

import aiohttp
from aiohttp import ClientError, ClientSession, ClientTimeout

from .errors import CrawlError, HTTPStatusError, NetworkError
from .parser import ContentParser


@dataclass
class ScrapedPage:
    """Outcome of one engine visit, passed to the callbacks."""
    url: str
    status_code: int = 0
    title: Optional[str] = None
    links: List[str] = field(default_factory=list)
    elapsed: float = 0.0
    context: Any = None


ScrapedCallback = Callable[[ScrapedPage], None]
ErrorCallback = Callable[[ScrapedPage, CrawlError], None]


class EngineClosedError(RuntimeError):
    """visit() was called on an engine that is not running."""


class CrawlEngine:
    """
    Fetches and parses pages asynchronously.

    ``visit()`` schedules the work and returns immediately. The engine never
    reads robots.txt and does not follow links by itself; discovered links are
    handed to the scraped callback, so traversal depth is not limited here.
    """

    def __init__(self, user_agent: str, request_timeout: float = 30,
                 max_concurrent_requests: int = 10,
                 max_content_length: int = 10 * 1024 * 1024):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_concurrent_requests = max_concurrent_requests
        self.max_content_length = max_content_length

        self.logger = logging.getLogger(__name__)
        self.parser = ContentParser()

        self.session: Optional[ClientSession] = None
        self.semaphore = asyncio.Semaphore(max_concurrent_requests)
        self._tasks: Set[asyncio.Task] = set()

        self._scraped_callbacks: List[ScrapedCallback] = []
        self._error_callbacks: List[ErrorCallback] = []

        self.stats = {
            'visits': 0,
            'scraped': 0,
            'errors': 0
        }

    def on_scraped(self, callback: ScrapedCallback):
        """Register a callback run after a page was fetched and parsed."""
        self._scraped_callbacks.append(callback)

    def on_error(self, callback: ErrorCallback):
        """Register a callback run when a page could not be fetched."""
        self._error_callbacks.append(callback)

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=ClientTimeout(total=self.request_timeout),
                headers={'User-Agent': self.user_agent},
                connector=aiohttp.TCPConnector(
                    limit=self.max_concurrent_requests * 2,
                    ttl_dns_cache=300
                )
            )
            self.logger.debug("CrawlEngine session started")

    async def close(self):
        """Wait for outstanding visits, then close the session."""
        await self.wait()
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("CrawlEngine session closed")

    def visit(self, url: str, context: Any = None) -> asyncio.Task:
        """
        Schedule a page visit.

        Args:
            url: Page to fetch
            context: Opaque value handed back on the ScrapedPage

        Raises:
            EngineClosedError: if the engine has not been started
        """
        if self.session is None:
            raise EngineClosedError(f"engine is not running, cannot visit {url}")

        self.stats['visits'] += 1
        task = asyncio.create_task(self._scrape(url, context))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait(self):
        """Block until every scheduled visit has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _scrape(self, url: str, context: Any):
        page = ScrapedPage(url=url, context=context)
        error: Optional[CrawlError] = None
        start_time = time.perf_counter()

        async with self.semaphore:
            try:
                async with self.session.get(url) as response:
                    page.status_code = response.status
                    if not 200 <= response.status < 300:
                        error = HTTPStatusError(response.status)
                    else:
                        content_type = response.headers.get('content-type', '').lower()
                        content = await self._read_content(response)
                        if content and 'html' in content_type:
                            parsed = self.parser.parse(str(response.url), content)
                            page.title = parsed.title
                            page.links = parsed.links
            except asyncio.TimeoutError:
                error = NetworkError(f"request timed out after {self.request_timeout}s")
            except (ClientError, ValueError) as e:
                error = NetworkError(str(e) or type(e).__name__)
            except Exception as e:
                # The caller counts on a callback for every visit.
                self.logger.exception(f"Unexpected error visiting {url}")
                error = CrawlError(f"{type(e).__name__}: {e}")

        page.elapsed = time.perf_counter() - start_time

        if error is None:
            self.stats['scraped'] += 1
            self._dispatch(self._scraped_callbacks, page)
        else:
            self.stats['errors'] += 1
            self.logger.debug(f"Visit of {url} failed: {error}")
            self._dispatch(self._error_callbacks, page, error)

    def _dispatch(self, callbacks: list, *args):
        for callback in callbacks:
            try:
                callback(*args)
            except Exception:
                self.logger.exception(f"Callback {callback!r} raised")

    async def _read_content(self, response) -> Optional[str]:
        """Read the body up to max_content_length bytes and decode it."""
        content_bytes = b''
        async for chunk in response.content.iter_chunked(8192):
            content_bytes += chunk
            if len(content_bytes) > self.max_content_length:
                self.logger.warning(f"Content exceeded size limit: {response.url}")
                break

        encoding = response.charset or 'utf-8'
        try:
            return content_bytes.decode(encoding, errors='replace')
        except LookupError:
            return content_bytes.decode('utf-8', errors='replace')

    def get_stats(self):
        return self.stats.copy()
