"""
Crawl dispatcher: validates, normalizes and deduplicates a batch of seed URLs,
times each admitted URL under a bounded concurrency budget and hands it off
to the crawl engine.
"""

import asyncio
import itertools
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from .admission import AdmissionGate
from .completion import CompletionBarrier
from .engine import CrawlEngine, ScrapedPage
from .errors import CrawlError, ParseError
from .fetcher import FetchTimer
from .url_normalizer import CanonicalKey, normalize_url, toggle_scheme
from .url_validator import validate_url
from ..storage.dedup_registry import DedupRegistry
from ..utils.config import Config
from ..utils.logger import get_crawler_logger
from ..utils.monitoring import CrawlerMonitor
from ..utils.report import ReportChannel


class TaskState(Enum):
    """Lifecycle of one seed URL inside a batch."""
    PENDING = 'pending'
    VALIDATING = 'validating'
    NORMALIZING = 'normalizing'
    DEDUP_CHECK = 'dedup_check'
    ADMITTED = 'admitted'
    FETCHING = 'fetching'
    FETCHED = 'fetched'
    HANDED_OFF = 'handed_off'
    # terminal
    DONE = 'done'
    SKIPPED = 'skipped'
    INVALID = 'invalid'
    FETCH_FAILED = 'fetch_failed'
    IGNORED = 'ignored'


TERMINAL_STATES = frozenset({
    TaskState.DONE, TaskState.SKIPPED, TaskState.INVALID,
    TaskState.FETCH_FAILED, TaskState.IGNORED
})


@dataclass
class DispatchTask:
    """One seed URL as typed by the user and what happened to it."""
    url: str
    index: int
    state: TaskState = TaskState.PENDING
    key: Optional[CanonicalKey] = None
    issues: List[CrawlError] = field(default_factory=list)
    fetch_time: Optional[float] = None
    error: Optional[Exception] = None
    title: Optional[str] = None
    completed: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


@dataclass
class CrawlStats:
    """Statistics for one batch."""
    start_time: float
    seed_urls: int = 0
    admitted: int = 0
    duplicates_skipped: int = 0
    invalid: int = 0
    ignored: int = 0
    validation_issues: int = 0
    fetches_attempted: int = 0
    fetch_failures: int = 0
    pages_finished: int = 0
    crawl_errors: int = 0
    total_fetch_time: float = 0.0
    end_time: Optional[float] = None

    @property
    def elapsed_time(self) -> float:
        return (self.end_time or time.time()) - self.start_time

    @property
    def average_fetch_time(self) -> float:
        timed = self.fetches_attempted - self.fetch_failures
        return self.total_fetch_time / timed if timed > 0 else 0.0


@dataclass
class BatchResult:
    """Everything a batch produced, read after it finished."""
    tasks: List[DispatchTask]
    duplicate_groups: Dict[str, List[str]]
    lines: List[str]
    stats: CrawlStats
    peak_in_flight: int = 0

    @property
    def fetch_count(self) -> int:
        return self.stats.fetches_attempted

    def by_state(self, state: TaskState) -> List[DispatchTask]:
        return [task for task in self.tasks if task.state is state]

    def state_counts(self) -> Dict[TaskState, int]:
        return dict(Counter(task.state for task in self.tasks))


class CrawlDispatcher:
    """
    Runs batches of seed URLs through validation, dedup, admission, timing
    and handoff.

    Per-URL flow: validate (issues are reported, never blocking) -> normalize
    (failure ends the URL as INVALID) -> dedup check (a claimed key ends it as
    SKIPPED) -> wait for an admission slot -> time one GET -> hand off to the
    crawl engine and release the slot. The engine's callbacks close each
    handed-off URL. A batch finishes once every URL reached a terminal state;
    the duplicate report is emitted after that point.

    Validation, normalization and dedup run in input order inside the dispatch
    loop, so which of two colliding URLs gets fetched is always the one typed
    first. Fetch and handoff run as one asyncio task per admitted URL.
    """

    _batch_ids = itertools.count(1)

    def __init__(self, config: Config, fetcher=None, engine=None,
                 report_sink: Optional[Callable[[str], None]] = None,
                 monitor: Optional[CrawlerMonitor] = None):
        self.config = config
        self.logger = get_crawler_logger(__name__)

        # Components; injected ones are owned by the caller.
        self.fetcher = fetcher
        self.engine = engine
        self._owns_fetcher = fetcher is None
        self._owns_engine = engine is None
        self._initialized = False
        self._callbacks_registered = False

        self.report_sink = report_sink
        self.monitor = monitor or CrawlerMonitor()

        # Batch state, rebuilt by every run_batch() call
        self.registry: Optional[DedupRegistry] = None
        self.gate: Optional[AdmissionGate] = None
        self.barrier: Optional[CompletionBarrier] = None
        self.report: Optional[ReportChannel] = None
        self.stats = CrawlStats(start_time=time.time())
        self.is_running = False

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        """Build missing components and wire the engine callbacks."""
        if self._initialized:
            return

        crawler_config = self.config.crawler

        if self.fetcher is None:
            self.fetcher = FetchTimer(
                user_agent=crawler_config.user_agent,
                request_timeout=crawler_config.request_timeout,
                max_connections=crawler_config.max_concurrent_requests
            )
        if self._owns_fetcher:
            await self.fetcher.start()

        if self.engine is None:
            self.engine = CrawlEngine(
                user_agent=crawler_config.user_agent,
                request_timeout=crawler_config.request_timeout,
                max_concurrent_requests=crawler_config.engine_concurrency
            )
        if self._owns_engine:
            await self.engine.start()

        if not self._callbacks_registered:
            self.engine.on_scraped(self._on_scraped)
            self.engine.on_error(self._on_error)
            self._callbacks_registered = True

        self._initialized = True
        self.logger.debug("Crawl dispatcher initialized")

    async def close(self):
        """Close the components this dispatcher created."""
        try:
            if self._owns_engine and self.engine:
                await self.engine.close()
        finally:
            if self._owns_fetcher and self.fetcher:
                await self.fetcher.close()
        self._initialized = False

    @staticmethod
    def split_input(raw_input: str) -> List[str]:
        """Split the raw user input into candidate URLs."""
        return (raw_input or '').split()

    async def run_batch(self, raw_input: str) -> BatchResult:
        """
        Dispatch one batch of seed URLs and wait for all of them to finish.

        Args:
            raw_input: Whitespace separated URLs as typed by the user

        Returns:
            BatchResult with per-URL outcomes, duplicate groups and report lines
        """
        if self.is_running:
            raise RuntimeError("A batch is already running on this dispatcher")

        await self.initialize()

        crawler_config = self.config.crawler
        self.is_running = True
        self.logger.extra['batch_id'] = next(self._batch_ids)

        self.registry = DedupRegistry()
        self.gate = AdmissionGate(crawler_config.max_concurrent_requests)
        self.barrier = CompletionBarrier()
        self.stats = CrawlStats(start_time=time.time())
        self.report = ReportChannel(self.report_sink)
        self.report.start()

        tasks: List[DispatchTask] = []
        workers: List[asyncio.Task] = []

        try:
            urls = self.split_input(raw_input)
            if not urls:
                self.report.send("Please enter at least one valid URL.")

            self.logger.info(f"Dispatching batch of {len(urls)} URLs")

            for index, url in enumerate(urls):
                task = DispatchTask(url=url, index=index)
                tasks.append(task)

                if index >= crawler_config.max_seed_urls:
                    task.state = TaskState.IGNORED
                    self.stats.ignored += 1
                    self.report.send(
                        f"Ignored {url}: at most {crawler_config.max_seed_urls} URLs are crawled per batch"
                    )
                    continue

                self.barrier.add()
                if self._dispatch(task):
                    workers.append(asyncio.create_task(self._process_url(task)))

            await self.barrier.wait()

            if urls:
                self._report_duplicates()
                self._report_summary()

        except BaseException:
            for worker in workers:
                worker.cancel()
            raise

        finally:
            if workers:
                await asyncio.gather(*workers, return_exceptions=True)
            self.stats.end_time = time.time()
            await self.report.close()
            self.is_running = False

        return BatchResult(
            tasks=tasks,
            duplicate_groups=self.registry.duplicate_groups(),
            lines=list(self.report.lines),
            stats=self.stats,
            peak_in_flight=self.gate.peak_in_flight
        )

    def _dispatch(self, task: DispatchTask) -> bool:
        """
        Run the synchronous part of the pipeline for one URL.

        Returns:
            True if the URL was admitted and needs a fetch task
        """
        self.stats.seed_urls += 1
        self.monitor.record_seed_url()

        task.state = TaskState.VALIDATING
        task.issues = validate_url(task.url)
        if task.issues:
            self.stats.validation_issues += len(task.issues)
            self.report.send(f"url: {task.url}")
            for issue in task.issues:
                self.monitor.record_validation_issue(issue.code)
                self.report.send(str(issue))

        task.state = TaskState.NORMALIZING
        try:
            task.key = normalize_url(task.url)
        except ParseError as e:
            task.state = TaskState.INVALID
            task.error = e
            self.stats.invalid += 1
            self.monitor.record_invalid()
            self.report.send(f"Invalid URL: {task.url} ({ParseError()})")
            self.logger.log_url_event(logging.INFO, task.url, f"Invalid URL: {e}")
            self._finish(task)
            return False

        task.state = TaskState.DEDUP_CHECK
        if not self.registry.try_admit(task.key):
            task.state = TaskState.SKIPPED
            self.registry.record_duplicate(task.key, task.url)
            self.stats.duplicates_skipped += 1
            self.monitor.record_duplicate_skipped()
            self.logger.log_url_event(logging.DEBUG, task.url, f"Duplicate of {task.key}")
            self._finish(task)
            return False

        # http://x and https://x are one visitation unit
        self.registry.mark_visited(toggle_scheme(task.key))

        task.state = TaskState.ADMITTED
        self.stats.admitted += 1
        self.monitor.record_admitted()
        return True

    async def _process_url(self, task: DispatchTask):
        """Time one admitted URL and hand it off, holding an admission slot."""
        handed_off = False
        try:
            async with self.gate:
                self.monitor.update_in_flight(self.gate.in_flight)
                task.state = TaskState.FETCHING
                self.stats.fetches_attempted += 1

                try:
                    task.fetch_time = await self.fetcher.time_fetch(task.url)
                except CrawlError as e:
                    self._fetch_failed(task, e)
                    return

                task.state = TaskState.FETCHED
                self.stats.total_fetch_time += task.fetch_time
                self.monitor.record_fetch_time(task.fetch_time)
                self.report.send(f"Loaded {task.url} in {task.fetch_time:.3f}s")

                try:
                    self.engine.visit(task.url, context=task)
                except RuntimeError as e:
                    task.state = TaskState.DONE
                    task.error = e
                    self.stats.crawl_errors += 1
                    self.monitor.record_error(type(e).__name__)
                    self.report.send(f"Something went wrong, {task.url}: {e}")
                    return

                task.state = TaskState.HANDED_OFF
                handed_off = True

        except Exception as e:
            self.logger.exception(f"Unexpected error processing {task.url}")
            self._fetch_failed(task, e)

        finally:
            self.monitor.update_in_flight(self.gate.in_flight)
            if not handed_off:
                self._finish(task)

    def _fetch_failed(self, task: DispatchTask, error: Exception):
        task.state = TaskState.FETCH_FAILED
        task.error = error
        self.stats.fetch_failures += 1
        self.monitor.record_error(type(error).__name__)
        self.report.send(f"Failed to fetch {task.url}: {error}")
        self.logger.log_url_event(logging.WARNING, task.url, f"Fetch failed: {error}")

    def _on_scraped(self, page: ScrapedPage):
        task = page.context
        if not isinstance(task, DispatchTask):
            self.logger.warning(f"Scraped page without a dispatch task: {page.url}")
            return

        task.state = TaskState.DONE
        task.title = page.title
        self.stats.pages_finished += 1
        self.monitor.record_page_finished()
        self.report.send(f"Finished {page.url}")
        self.logger.log_url_event(
            logging.DEBUG, page.url, f"Scraped in {page.elapsed:.3f}s, {len(page.links)} links"
        )
        self._finish(task)

    def _on_error(self, page: ScrapedPage, error: CrawlError):
        task = page.context
        if not isinstance(task, DispatchTask):
            self.logger.warning(f"Failed page without a dispatch task: {page.url}")
            return

        task.state = TaskState.DONE
        task.error = error
        self.stats.crawl_errors += 1
        self.monitor.record_error(type(error).__name__)
        self.report.send(f"Something went wrong, {page.url}: {error}")
        self._finish(task)

    def _finish(self, task: DispatchTask):
        """Count a URL as finished, once."""
        if task.completed:
            self.logger.warning(f"{task.url} finished twice, ignoring the second completion")
            return
        task.completed = True
        self.barrier.done()

    def _report_duplicates(self):
        for urls in self.registry.duplicate_groups().values():
            listing = "\n- ".join(urls)
            self.report.send(f"Duplicate or Similar URLs:\n- {listing}")

    def _report_summary(self):
        stats = self.stats
        self.report.send(
            f"Batch finished: {stats.pages_finished} crawled, "
            f"{stats.duplicates_skipped} duplicates, {stats.invalid} invalid, "
            f"{stats.fetch_failures + stats.crawl_errors} failed "
            f"in {stats.elapsed_time:.2f}s"
        )

        self.logger.log_crawler_stat('seed_urls', stats.seed_urls)
        self.logger.log_crawler_stat('admitted', stats.admitted)
        self.logger.log_crawler_stat('average_fetch_time', round(stats.average_fetch_time, 3))
        self.logger.log_crawler_stat('peak_in_flight', self.gate.peak_in_flight)
        self.logger.info(f"Dedup registry stats: {self.registry.get_stats()}")

    def get_stats(self) -> Dict:
        """Get statistics of the current or last batch."""
        return {
            'seed_urls': self.stats.seed_urls,
            'admitted': self.stats.admitted,
            'duplicates_skipped': self.stats.duplicates_skipped,
            'invalid': self.stats.invalid,
            'ignored': self.stats.ignored,
            'fetch_failures': self.stats.fetch_failures,
            'pages_finished': self.stats.pages_finished,
            'crawl_errors': self.stats.crawl_errors,
            'elapsed_time': self.stats.elapsed_time,
            'average_fetch_time': self.stats.average_fetch_time,
            'is_running': self.is_running
        }
