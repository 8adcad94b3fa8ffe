#!/usr/bin/env python3
"""
Main entry point for the seed crawler.
"""

import asyncio
import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from seedcrawl import __version__
from seedcrawl.utils.config import load_config, default_config, Config
from seedcrawl.utils.logger import setup_logging, log_system_info
from seedcrawl.utils.monitoring import initialize_monitoring
from seedcrawl.crawler.dispatcher import CrawlDispatcher


class CrawlerApp:
    """Command line front end: collects the input string and prints report lines."""

    def __init__(self):
        self.dispatcher: Optional[CrawlDispatcher] = None
        self.logger = logging.getLogger(__name__)

    def setup_signal_handlers(self, task: asyncio.Task):
        """Cancel the running batch on SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, task.cancel)
            except NotImplementedError:
                # Windows event loops do not support signal handlers
                pass

    async def run(self, config: Config, urls: List[str]) -> int:
        """Run one batch."""
        monitor = initialize_monitoring(
            enable_prometheus=config.monitoring.metrics_enabled,
            prometheus_port=config.monitoring.prometheus_port
        )

        self.logger.info("=== SEED CRAWLER STARTING ===")
        self.logger.info(f"Seed URLs: {urls}")
        self.logger.info(f"Max concurrent requests: {config.crawler.max_concurrent_requests}")
        self.logger.info(f"Request timeout: {config.crawler.request_timeout}s")

        self.dispatcher = CrawlDispatcher(config, monitor=monitor)

        try:
            async with self.dispatcher:
                batch = asyncio.create_task(self.dispatcher.run_batch(" ".join(urls)))
                self.setup_signal_handlers(batch)
                result = await batch
        except asyncio.CancelledError:
            self.logger.info("Batch cancelled")
            return 130
        finally:
            self.logger.info(f"Metrics: {monitor.get_summary()}")
            self.logger.info("=== SEED CRAWLER FINISHED ===")

        self.logger.info(f"Final state counts: {result.state_counts()}")
        return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Seed URL crawler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py https://example.com http://www.example.org/about
  python main.py --config my_config.yaml https://example.com
        """
    )

    parser.add_argument(
        'urls',
        nargs='*',
        help='Seed URLs (whitespace separated, at most max_seed_urls are crawled)'
    )

    parser.add_argument(
        '--config',
        default='config.yaml',
        help='Path to configuration file (default: config.yaml, defaults used if missing)'
    )

    parser.add_argument(
        '--json-logs',
        action='store_true',
        help='Write log records as JSON'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'Seed Crawler {__version__}'
    )

    args = parser.parse_args()

    try:
        if Path(args.config).exists():
            config = load_config(args.config)
        else:
            config = default_config()
    except (ValueError, OSError, yaml.YAMLError) as e:
        print(f"Error: invalid configuration '{args.config}': {e}", file=sys.stderr)
        return 1

    setup_logging(
        {
            'level': config.logging.level,
            'file': config.logging.file,
            'format': config.logging.format
        },
        enable_json=args.json_logs or config.logging.json
    )
    log_system_info()

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(config, args.urls))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1


if __name__ == '__main__':
    sys.exit(main())
