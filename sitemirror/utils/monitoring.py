"""
Crawl metrics backed by prometheus_client.
"""

import logging
import time
from typing import Dict, Any, Optional

from prometheus_client import Counter, Gauge, CollectorRegistry, start_http_server


class CrawlMetrics:
    """
    Collects crawl metrics in a private registry.

    A private registry keeps several crawls in one process (tests, embedding)
    from colliding on metric names.
    """

    def __init__(self, enable_server: bool = False, port: int = 8000):
        self.logger = logging.getLogger(__name__)
        self.enable_server = enable_server
        self.port = port
        self.start_time = time.time()
        self.registry = CollectorRegistry()

        self.pages_fetched = Counter(
            'mirror_pages_fetched_total',
            'Total number of URLs fetched successfully',
            registry=self.registry
        )
        self.files_saved = Counter(
            'mirror_files_saved_total',
            'Total number of files written to the mirror',
            registry=self.registry
        )
        self.bytes_downloaded = Counter(
            'mirror_bytes_downloaded_total',
            'Total bytes downloaded',
            registry=self.registry
        )
        self.tasks_skipped = Counter(
            'mirror_tasks_skipped_total',
            'Tasks skipped because their URL was already claimed',
            registry=self.registry
        )
        self.errors = Counter(
            'mirror_errors_total',
            'Total number of failed tasks',
            ['kind'],
            registry=self.registry
        )
        self.queue_size = Gauge(
            'mirror_queue_size',
            'Number of tasks waiting in the frontier',
            registry=self.registry
        )
        self.active_workers = Gauge(
            'mirror_active_workers',
            'Number of workers currently processing a task',
            registry=self.registry
        )

    def start_server(self):
        """Start the Prometheus exposition HTTP server if enabled."""
        if not self.enable_server:
            return

        try:
            start_http_server(self.port, registry=self.registry)
            self.logger.info(f"Prometheus metrics server started on port {self.port}")
        except OSError as e:
            self.logger.error(f"Failed to start Prometheus server: {e}")

    def record_fetch(self, size: int):
        self.pages_fetched.inc()
        self.bytes_downloaded.inc(size)

    def record_saved(self):
        self.files_saved.inc()

    def record_skipped(self):
        self.tasks_skipped.inc()

    def record_error(self, kind: str):
        """Record a failed task. ``kind`` is 'fetch' or 'persist'."""
        self.errors.labels(kind=kind).inc()

    def value(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Read a sample value from the registry (0 when never recorded)."""
        sample = self.registry.get_sample_value(name, labels or {})
        return sample if sample is not None else 0.0

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        runtime = time.time() - self.start_time
        fetched = self.value('mirror_pages_fetched_total')
        return {
            'runtime_seconds': runtime,
            'pages_fetched': fetched,
            'files_saved': self.value('mirror_files_saved_total'),
            'bytes_downloaded': self.value('mirror_bytes_downloaded_total'),
            'tasks_skipped': self.value('mirror_tasks_skipped_total'),
            'fetch_errors': self.value('mirror_errors_total', {'kind': 'fetch'}),
            'persist_errors': self.value('mirror_errors_total', {'kind': 'persist'}),
            'urls_per_second': fetched / runtime if runtime > 0 else 0,
        }
