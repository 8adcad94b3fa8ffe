"""
Monitoring and metrics collection for the seed crawler.
"""

import time
import logging
from typing import Dict, Optional, Any, List
from dataclasses import dataclass, field

from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry
from prometheus_client import start_http_server


@dataclass
class Metric:
    """Metric container with its most recent value."""
    name: str
    description: str
    metric_type: str  # counter, gauge, histogram
    current_value: float = 0.0
    observations: List[float] = field(default_factory=list)


class MetricsCollector:
    """Collects dispatcher metrics in memory and, optionally, in Prometheus."""

    def __init__(self, enable_prometheus: bool = False, prometheus_port: int = 8000):
        self.logger = logging.getLogger(__name__)
        self.metrics: Dict[str, Metric] = {}
        self.enable_prometheus = enable_prometheus
        self.prometheus_port = prometheus_port

        # Each collector gets its own registry so several batches or tests
        # never collide on metric names.
        self.prometheus_registry = CollectorRegistry()
        self.prometheus_metrics = {
            'seed_urls_total': Counter(
                'seedcrawl_seed_urls_total',
                'Seed URLs received',
                registry=self.prometheus_registry
            ),
            'urls_admitted_total': Counter(
                'seedcrawl_urls_admitted_total',
                'Seed URLs admitted for fetching',
                registry=self.prometheus_registry
            ),
            'duplicates_skipped_total': Counter(
                'seedcrawl_duplicates_skipped_total',
                'Seed URLs skipped as duplicates',
                registry=self.prometheus_registry
            ),
            'invalid_urls_total': Counter(
                'seedcrawl_invalid_urls_total',
                'Seed URLs that could not be parsed',
                registry=self.prometheus_registry
            ),
            'validation_issues_total': Counter(
                'seedcrawl_validation_issues_total',
                'Validation and SEO issues reported',
                ['code'],
                registry=self.prometheus_registry
            ),
            'errors_total': Counter(
                'seedcrawl_errors_total',
                'Fetch and crawl errors',
                ['error_type'],
                registry=self.prometheus_registry
            ),
            'pages_finished_total': Counter(
                'seedcrawl_pages_finished_total',
                'Pages scraped by the crawl engine',
                registry=self.prometheus_registry
            ),
            'fetch_seconds': Histogram(
                'seedcrawl_fetch_seconds',
                'Time to response headers for seed URLs',
                registry=self.prometheus_registry
            ),
            'in_flight': Gauge(
                'seedcrawl_in_flight',
                'Seed URLs holding an admission slot',
                registry=self.prometheus_registry
            )
        }

    def start_prometheus_server(self):
        """Start Prometheus metrics HTTP server."""
        if not self.enable_prometheus:
            return

        try:
            start_http_server(self.prometheus_port, registry=self.prometheus_registry)
            self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")
        except OSError as e:
            self.logger.error(f"Failed to start Prometheus server: {e}")

    def _metric(self, name: str, metric_type: str, description: str) -> Metric:
        if name not in self.metrics:
            self.metrics[name] = Metric(name=name, description=description, metric_type=metric_type)
        return self.metrics[name]

    def increment_counter(self, name: str, labels: Optional[Dict[str, str]] = None,
                          description: str = ""):
        """Increment a counter metric."""
        metric = self._metric(name, 'counter', description)
        metric.current_value += 1

        prom_metric = self.prometheus_metrics.get(name)
        if prom_metric is not None:
            if labels:
                prom_metric.labels(**labels).inc()
            else:
                prom_metric.inc()

    def set_gauge(self, name: str, value: float, description: str = ""):
        """Set a gauge metric value."""
        self._metric(name, 'gauge', description).current_value = value

        prom_metric = self.prometheus_metrics.get(name)
        if prom_metric is not None:
            prom_metric.set(value)

    def observe_histogram(self, name: str, value: float, description: str = ""):
        """Record a histogram observation."""
        metric = self._metric(name, 'histogram', description)
        metric.current_value = value
        metric.observations.append(value)

        prom_metric = self.prometheus_metrics.get(name)
        if prom_metric is not None:
            prom_metric.observe(value)

    def get_metric(self, name: str) -> Optional[Metric]:
        return self.metrics.get(name)

    def get_current_values(self) -> Dict[str, float]:
        """Get current values of all metrics."""
        return {name: metric.current_value for name, metric in self.metrics.items()}


class CrawlerMonitor:
    """High-level monitoring interface for the dispatcher."""

    def __init__(self, metrics_collector: Optional[MetricsCollector] = None):
        self.metrics = metrics_collector or MetricsCollector()
        self.start_time = time.time()

    def record_seed_url(self):
        self.metrics.increment_counter('seed_urls_total', description='Seed URLs received')

    def record_validation_issue(self, code: int):
        self.metrics.increment_counter('validation_issues_total', {'code': str(code)},
                                       'Validation issues')

    def record_invalid(self):
        self.metrics.increment_counter('invalid_urls_total', description='Unparseable URLs')

    def record_admitted(self):
        self.metrics.increment_counter('urls_admitted_total', description='Admitted URLs')

    def record_duplicate_skipped(self):
        self.metrics.increment_counter('duplicates_skipped_total', description='Duplicates skipped')

    def record_fetch_time(self, seconds: float):
        self.metrics.observe_histogram('fetch_seconds', seconds, 'Time to response headers')

    def record_error(self, error_type: str):
        """Record a fetch or crawl error by error class name."""
        self.metrics.increment_counter('errors_total', {'error_type': error_type}, 'Errors')

    def record_page_finished(self):
        self.metrics.increment_counter('pages_finished_total', description='Pages finished')

    def update_in_flight(self, count: int):
        self.metrics.set_gauge('in_flight', count, 'Admission slots in use')

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        return {
            'runtime_seconds': time.time() - self.start_time,
            'metrics': self.metrics.get_current_values()
        }


def initialize_monitoring(enable_prometheus: bool = False, prometheus_port: int = 8000) -> CrawlerMonitor:
    """Build a monitor and start the exporter when enabled."""
    metrics_collector = MetricsCollector(enable_prometheus, prometheus_port)
    metrics_collector.start_prometheus_server()
    return CrawlerMonitor(metrics_collector)
