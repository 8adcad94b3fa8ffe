"""Report channel, metrics and log formatting."""

import asyncio
import json
import logging

from seedcrawl.utils.logger import (
    JSONFormatter, PerformanceFilter, get_crawler_logger, setup_logging
)
from seedcrawl.utils.monitoring import CrawlerMonitor, MetricsCollector
from seedcrawl.utils.report import ReportChannel


async def test_channel_serializes_concurrent_producers():
    written = []
    channel = ReportChannel(sink=written.append)
    channel.start()

    async def producer(name):
        for i in range(20):
            channel.send(f"{name}-{i}")
            await asyncio.sleep(0)

    await asyncio.gather(*(producer(name) for name in "abc"))
    await channel.close()

    assert len(written) == 60
    assert written == channel.lines
    for name in "abc":
        own = [line for line in written if line.startswith(name)]
        assert own == [f"{name}-{i}" for i in range(20)]


async def test_channel_survives_a_failing_sink():
    calls = []

    def sink(line):
        calls.append(line)
        if line == "bad":
            raise OSError("display gone")

    async with ReportChannel(sink=sink) as channel:
        channel.send("bad")
        channel.send("good")

    assert calls == ["bad", "good"]
    assert channel.lines == ["bad", "good"]


async def test_close_without_start_is_a_no_op():
    await ReportChannel(sink=lambda line: None).close()


def test_monitor_counts_events():
    monitor = CrawlerMonitor(MetricsCollector())
    monitor.record_seed_url()
    monitor.record_seed_url()
    monitor.record_admitted()
    monitor.record_validation_issue(199)
    monitor.record_error("NetworkError")
    monitor.record_fetch_time(0.25)
    monitor.update_in_flight(3)

    metrics = monitor.get_summary()['metrics']
    assert metrics['seed_urls_total'] == 2
    assert metrics['urls_admitted_total'] == 1
    assert metrics['errors_total'] == 1
    assert metrics['fetch_seconds'] == 0.25
    assert metrics['in_flight'] == 3

    registry = monitor.metrics.prometheus_registry
    assert registry.get_sample_value('seedcrawl_seed_urls_total') == 2
    assert registry.get_sample_value(
        'seedcrawl_errors_total', {'error_type': 'NetworkError'}
    ) == 1
    assert registry.get_sample_value('seedcrawl_in_flight') == 3


def test_collectors_have_independent_registries():
    first, second = MetricsCollector(), MetricsCollector()
    first.increment_counter('seed_urls_total')
    assert second.prometheus_registry.get_sample_value('seedcrawl_seed_urls_total') == 0


def test_json_formatter_includes_url_context():
    logger = get_crawler_logger("seedcrawl.test", batch_id=7)
    records = []

    class Capture(logging.Handler):
        def emit(self, record):
            records.append(record)

    handler = Capture()
    logger.logger.addHandler(handler)
    logger.logger.setLevel(logging.INFO)
    try:
        logger.log_url_event(logging.INFO, "http://a.com", "Loaded")
    finally:
        logger.logger.removeHandler(handler)

    entry = json.loads(JSONFormatter().format(records[0]))
    assert entry['message'] == "Loaded"
    assert entry['url'] == "http://a.com"
    assert entry['event_type'] == "url_event"
    assert entry['batch_id'] == 7
    assert entry['level'] == "INFO"


def _record(name, level, message="msg"):
    return logging.LogRecord(name, level, __file__, 1, message, None, None)


def test_performance_filter_drops_aiohttp_chatter_only():
    noise = PerformanceFilter()

    assert not noise.filter(_record('aiohttp.access', logging.INFO))
    assert not noise.filter(_record('aiohttp.client', logging.DEBUG))
    assert noise.filter(_record('aiohttp.client', logging.WARNING))
    assert noise.filter(_record('seedcrawl.crawler.fetcher', logging.DEBUG))


def test_setup_logging_writes_crawl_and_error_logs(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    log_file = tmp_path / "logs" / "crawl.log"

    try:
        setup_logging({'level': 'DEBUG', 'file': str(log_file)}, enable_json=True)
        logging.getLogger("seedcrawl.test").error("fetch exploded")
        logging.getLogger("aiohttp.access").info("GET / 200")
        for handler in root.handlers:
            handler.flush()

        crawl_lines = log_file.read_text().splitlines()
        error_lines = (log_file.parent / "errors.log").read_text().splitlines()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
        logging.getLogger('aiohttp').setLevel(logging.NOTSET)

    messages = [json.loads(line)['message'] for line in crawl_lines]
    assert "fetch exploded" in messages
    assert "GET / 200" not in messages
    assert [json.loads(line)['message'] for line in error_lines] == ["fetch exploded"]
