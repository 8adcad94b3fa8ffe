"""Test configuration and shared fixtures."""

import asyncio
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from seedcrawl.crawler.dispatcher import CrawlDispatcher
from seedcrawl.crawler.engine import EngineClosedError, ScrapedPage
from seedcrawl.utils.config import Config, CrawlerConfig


class FakeFetcher:
    """Stands in for FetchTimer; records calls and concurrent activity."""

    def __init__(self, failures=None, delay: float = 0.0, elapsed: float = 0.01):
        self.failures = failures or {}
        self.delay = delay
        self.elapsed = elapsed
        self.calls = []
        self.active = 0
        self.peak = 0

    async def time_fetch(self, url: str) -> float:
        self.calls.append(url)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
            if url in self.failures:
                raise self.failures[url]
            return self.elapsed
        finally:
            self.active -= 1


class FakeEngine:
    """Stands in for CrawlEngine; answers each visit on the next loop iteration."""

    def __init__(self, failures=None, closed: bool = False):
        self.failures = failures or {}
        self.closed = closed
        self.visits = []
        self._scraped = []
        self._errors = []

    def on_scraped(self, callback):
        self._scraped.append(callback)

    def on_error(self, callback):
        self._errors.append(callback)

    def visit(self, url, context=None):
        if self.closed:
            raise EngineClosedError("engine is not running")

        self.visits.append(url)
        page = ScrapedPage(url=url, status_code=200, title=f"title of {url}", context=context)
        loop = asyncio.get_running_loop()
        if url in self.failures:
            for callback in self._errors:
                loop.call_soon(callback, page, self.failures[url])
        else:
            for callback in self._scraped:
                loop.call_soon(callback, page)


def make_config(**crawler_overrides) -> Config:
    return Config(crawler=CrawlerConfig(**crawler_overrides))


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def make_dispatcher():
    def factory(fetcher=None, engine=None, sink=None, **crawler_overrides):
        return CrawlDispatcher(
            make_config(**crawler_overrides),
            fetcher=fetcher or FakeFetcher(),
            engine=engine or FakeEngine(),
            report_sink=sink or (lambda line: None)
        )
    return factory


HOME_HTML = """
<html>
  <head><title>  Home
  page </title></head>
  <body>
    <a href="/about">About</a>
    <a href="/about#team">Team</a>
    <a href="#top">Top</a>
    <a href="mailto:someone@example.com">Mail</a>
    <a href="https://other.example.org/x">Other</a>
  </body>
</html>
"""


@pytest.fixture
async def http_server():
    async def home(request):
        return web.Response(text=HOME_HTML, content_type='text/html')

    async def about(request):
        return web.Response(text="<html><title>About</title></html>", content_type='text/html')

    async def plain(request):
        return web.Response(text="just text")

    async def missing(request):
        return web.Response(status=404, text="not here")

    async def broken(request):
        return web.Response(status=500, text="boom")

    async def slow(request):
        await asyncio.sleep(2)
        return web.Response(text="late")

    app = web.Application()
    app.router.add_get('/', home)
    app.router.add_get('/about', about)
    app.router.add_get('/plain', plain)
    app.router.add_get('/missing', missing)
    app.router.add_get('/broken', broken)
    app.router.add_get('/slow', slow)

    server = TestServer(app)
    await server.start_server()
    yield server
    await server.close()
