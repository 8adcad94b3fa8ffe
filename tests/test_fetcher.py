"""Fetch timing against a local HTTP server."""

import pytest

from seedcrawl.crawler.errors import HTTPStatusError, NetworkError
from seedcrawl.crawler.fetcher import FetchTimer


async def test_successful_fetch_returns_elapsed_time(http_server):
    async with FetchTimer(user_agent="test-agent", request_timeout=5) as fetcher:
        elapsed = await fetcher.time_fetch(str(http_server.make_url('/')))

        assert 0 <= elapsed < 5
        assert fetcher.get_stats()['successful_requests'] == 1


async def test_non_200_status_raises(http_server):
    async with FetchTimer(user_agent="test-agent", request_timeout=5) as fetcher:
        with pytest.raises(HTTPStatusError) as excinfo:
            await fetcher.time_fetch(str(http_server.make_url('/missing')))

        assert excinfo.value.status == 404
        assert str(excinfo.value) == "Error: got HTTP status code 404 (Code: 404)"
        assert fetcher.get_stats()['status_errors'] == 1


async def test_stalled_request_hits_deadline(http_server):
    async with FetchTimer(user_agent="test-agent", request_timeout=0.2) as fetcher:
        with pytest.raises(NetworkError) as excinfo:
            await fetcher.time_fetch(str(http_server.make_url('/slow')))

        assert "timed out" in excinfo.value.message


async def test_connection_failure_is_a_network_error(unused_tcp_port):
    async with FetchTimer(user_agent="test-agent", request_timeout=2) as fetcher:
        with pytest.raises(NetworkError):
            await fetcher.time_fetch(f"http://127.0.0.1:{unused_tcp_port}/")

        assert fetcher.get_stats()['failed_requests'] == 1


async def test_unsupported_scheme_is_a_network_error():
    async with FetchTimer(user_agent="test-agent", request_timeout=2) as fetcher:
        with pytest.raises(NetworkError):
            await fetcher.time_fetch("ftp://example.com/file")


async def test_session_opens_lazily_and_stats_reset(http_server):
    fetcher = FetchTimer(user_agent="test-agent", request_timeout=5)
    try:
        await fetcher.time_fetch(str(http_server.make_url('/plain')))
        assert fetcher.session is not None
    finally:
        await fetcher.close()

    assert fetcher.session is None
    fetcher.reset_stats()
    assert fetcher.get_stats()['total_requests'] == 0
