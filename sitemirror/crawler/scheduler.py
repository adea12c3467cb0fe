"""
Crawler scheduler that runs the worker pool over the crawl frontier.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import aiohttp
from redis.exceptions import RedisError

from .fetcher import WebFetcher
from .frontier import URLFrontier, DownloadTask, TaskKind
from .parser import ContentParser, ParsedLinks, is_html_content
from .rewriter import LinkRewriter
from .urls import normalize_url, should_download
from ..errors import ConfigError, FetchError, PersistError
from ..storage.mirror import MirrorStorage
from ..storage.visited import VisitedSet, create_visited_set
from ..utils.config import Config
from ..utils.logger import CrawlerLogAdapter, get_crawler_logger
from ..utils.monitoring import CrawlMetrics


@dataclass
class CrawlStats:
    """Statistics for one crawl."""
    start_time: float
    tasks_created: int = 0
    fetched: int = 0
    saved: int = 0
    failed: int = 0
    skipped: int = 0
    rewritten: int = 0
    total_bytes_downloaded: int = 0

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time

    @property
    def pages_per_minute(self) -> float:
        elapsed_minutes = self.elapsed_time / 60
        return self.fetched / elapsed_minutes if elapsed_minutes > 0 else 0

    def to_dict(self) -> Dict:
        return {
            'tasks_created': self.tasks_created,
            'fetched': self.fetched,
            'saved': self.saved,
            'failed': self.failed,
            'skipped': self.skipped,
            'rewritten': self.rewritten,
            'total_bytes_downloaded': self.total_bytes_downloaded,
            'elapsed_time': self.elapsed_time,
        }


class CrawlerScheduler:
    """
    Coordinates the crawl.

    A fixed pool of worker tasks reads one bounded frontier. Each worker
    claims a URL in the visited set, fetches it, saves it, and for HTML
    pages queues newly discovered links and rewrites the saved copy so its
    references point into the mirror.
    """

    def __init__(self, config: Config,
                 fetcher: Optional[WebFetcher] = None,
                 visited: Optional[VisitedSet] = None,
                 storage: Optional[MirrorStorage] = None,
                 metrics: Optional[CrawlMetrics] = None,
                 report_interval: float = 30):
        self.config = config
        self.crawl = config.crawl
        self.logger = logging.getLogger(__name__)

        self.fetcher = fetcher or WebFetcher(
            user_agent=self.crawl.user_agent,
            request_timeout=self.crawl.request_timeout,
            max_concurrent_requests=self.crawl.workers,
            max_content_size=self.crawl.max_content_size
        )
        self.visited = visited or create_visited_set(config.visited)
        self.storage = storage or MirrorStorage(self.crawl.output_dir, self.crawl.write_manifest)
        self.metrics = metrics or CrawlMetrics(
            enable_server=config.monitoring.metrics_enabled,
            port=config.monitoring.prometheus_port
        )
        self.parser = ContentParser()
        self.rewriter = LinkRewriter()
        self.report_interval = report_interval

        self.seed_url = normalize_url(self.crawl.seed_url)
        self.seed_host = self.crawl.seed_host
        self.max_depth = self.crawl.max_depth

        # Crawl state
        self.frontier: Optional[URLFrontier] = None
        self.stats = CrawlStats(start_time=time.time())
        self.is_running = False
        self.workers: List[asyncio.Task] = []

    async def initialize(self):
        """
        Prepare storage, network session and visited set.

        Raises:
            ConfigError: if the output directory cannot be created or the
                visited-set backend is unreachable
        """
        await self.storage.initialize()
        await self.fetcher.start()
        try:
            await self.visited.clear()
        except RedisError as e:
            raise ConfigError(f"Visited set backend unavailable: {e}") from e
        self.metrics.start_server()
        self.logger.info("Crawler scheduler initialized")

    async def submit(self, task: DownloadTask, log: Optional[CrawlerLogAdapter] = None):
        """
        Add a task to the frontier.

        Blocks while the queue is full. If blocking would stall every
        worker, the task is processed right here instead.
        """
        self.frontier.register(task)
        self.stats.tasks_created += 1

        if self.frontier.must_run_inline():
            (log or self.logger).debug(f"Queue full, processing inline: {task.url}")
            await self._run_task(task, log or get_crawler_logger(__name__, worker="inline"))
            return

        await self.frontier.put(task)
        self.metrics.queue_size.set(self.frontier.qsize())

    async def start_crawling(self) -> CrawlStats:
        """
        Run the crawl until no task is queued or in flight.

        Returns:
            CrawlStats summary of the run
        """
        if self.is_running:
            raise RuntimeError("Crawler is already running")

        self.is_running = True
        self.stats = CrawlStats(start_time=time.time())
        self.frontier = URLFrontier(self.crawl.queue_size, self.crawl.workers)

        stats_task = None
        try:
            await self.submit(DownloadTask(url=self.seed_url, depth=0, kind=TaskKind.PAGE))

            self.workers = [
                asyncio.create_task(self._worker(f"worker-{i}"))
                for i in range(self.crawl.workers)
            ]
            stats_task = asyncio.create_task(self._stats_reporter())

            self.logger.info(f"Started crawling {self.seed_url} with {self.crawl.workers} workers "
                             f"(max depth {self.max_depth})")

            await asyncio.gather(*self.workers)
            self._log_final_stats()
        finally:
            if stats_task:
                stats_task.cancel()
                await asyncio.gather(stats_task, return_exceptions=True)
            await self._cleanup_workers()
            self.is_running = False

        return self.stats

    async def _worker(self, worker_id: str):
        """Worker coroutine that processes tasks until the frontier closes."""
        log = get_crawler_logger(__name__, worker=worker_id)
        log.debug("Worker started")

        while True:
            task = await self.frontier.get()
            if task is None:
                break
            self.metrics.queue_size.set(self.frontier.qsize())
            self.metrics.active_workers.inc()
            try:
                await self._run_task(task, log)
            finally:
                self.metrics.active_workers.dec()

        log.debug("Worker finished")

    async def _run_task(self, task: DownloadTask, log: CrawlerLogAdapter):
        """Process one task and always account for its terminal state."""
        try:
            await self._process_task(task, log)
        except Exception as e:
            self.stats.failed += 1
            log.error(f"Unexpected error processing {task.url}: {e}", exc_info=True)
        finally:
            self.frontier.task_finished()

    async def _process_task(self, task: DownloadTask, log: CrawlerLogAdapter):
        """Claim, fetch, save and (for pages) expand and rewrite one task."""
        if not await self.visited.claim(task.url):
            self.stats.skipped += 1
            self.metrics.record_skipped()
            log.debug(f"Already claimed, skipping {task.url}")
            return

        log.info(f"Downloading {task.url} (depth {task.depth}, {task.kind.value})")

        try:
            result = await self.fetcher.fetch(task.url)
        except (FetchError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._record_failure('fetch', task, str(e) or type(e).__name__, log)
            return

        self.stats.fetched += 1
        self.stats.total_bytes_downloaded += len(result.content)
        self.metrics.record_fetch(len(result.content))

        try:
            entry = await self.storage.save(task.url, result.content, result.content_type)
        except PersistError as e:
            self._record_failure('persist', task, e, log)
            return

        self.stats.saved += 1
        self.metrics.record_saved()

        if not (task.expandable and is_html_content(result.content_type)):
            return

        parsed = self.parser.parse(task.url, result.content, result.content_type)
        await self._queue_new_urls(task, parsed, log)

        rewritten = self.rewriter.rewrite(result.content, task.url, parsed.encoding)
        if rewritten != result.content:
            try:
                await self.storage.overwrite(entry, rewritten)
                self.stats.rewritten += 1
            except PersistError as e:
                self.metrics.record_error('persist')
                log.log_url_event(logging.WARNING, task.url, f"Could not rewrite links in {task.url}: {e}")

    def _record_failure(self, kind: str, task: DownloadTask, error, log: CrawlerLogAdapter):
        self.stats.failed += 1
        self.metrics.record_error(kind)
        log.log_url_event(logging.WARNING, task.url, f"Failed to {kind} {task.url}: {error}")

    async def _queue_new_urls(self, task: DownloadTask, parsed: ParsedLinks,
                              log: CrawlerLogAdapter):
        """
        Queue links found on a page.

        Resources are fetched at the depth of the page that references them
        and are never expanded. Page links go one level deeper, and only
        while the page is above the depth limit. A URL that is both an
        anchor and a resource on the page is queued once, as a page.
        """
        candidates = []
        if task.depth < self.max_depth:
            candidates = [(url, task.depth + 1, TaskKind.PAGE) for url in parsed.pages]
        page_urls = {url for url, _, _ in candidates}
        candidates += [(url, task.depth, TaskKind.RESOURCE)
                       for url in parsed.resources if url not in page_urls]

        queued = 0
        for url, depth, kind in candidates:
            if not should_download(url, self.seed_host, self.crawl.same_domain):
                continue
            if await self.visited.contains(url):
                continue
            await self.submit(DownloadTask(url=url, depth=depth, kind=kind, parent_url=task.url), log)
            queued += 1

        log.debug(f"Queued {queued} new URLs from {task.url}")

    async def _stats_reporter(self):
        """Periodically log crawl progress."""
        while True:
            await asyncio.sleep(self.report_interval)
            self.logger.info(
                f"Crawl Progress: "
                f"Fetched={self.stats.fetched}, "
                f"Saved={self.stats.saved}, "
                f"Queued={self.frontier.qsize()}, "
                f"InFlight={self.frontier.in_flight}, "
                f"Failed={self.stats.failed}, "
                f"Rate={self.stats.pages_per_minute:.1f} pages/min"
            )

    def _log_final_stats(self):
        """Log final crawl statistics."""
        self.logger.info("=== CRAWL COMPLETED ===")
        self.logger.info(f"Tasks created: {self.stats.tasks_created}")
        self.logger.info(f"Fetched: {self.stats.fetched}")
        self.logger.info(f"Saved: {self.stats.saved}")
        self.logger.info(f"Pages rewritten: {self.stats.rewritten}")
        self.logger.info(f"Skipped (already claimed): {self.stats.skipped}")
        self.logger.info(f"Failed: {self.stats.failed}")
        self.logger.info(f"Total time: {self.stats.elapsed_time:.2f} seconds")
        self.logger.info(f"Data downloaded: {self.stats.total_bytes_downloaded / 1024 / 1024:.2f} MB")
        self.logger.info(f"Fetcher stats: {self.fetcher.get_stats()}")
        self.logger.info(f"Storage stats: {self.storage.get_stats()}")
        self.logger.info(f"Metrics: {self.metrics.get_summary()}")

    async def _cleanup_workers(self):
        """Cancel and cleanup worker tasks."""
        if self.workers:
            for worker in self.workers:
                if not worker.done():
                    worker.cancel()
            await asyncio.gather(*self.workers, return_exceptions=True)
            self.workers.clear()

    async def close(self):
        """Close all connections and write the manifest."""
        await self.fetcher.close()
        await self.visited.close()
        await self.storage.close({'stats': self.stats.to_dict()})
        self.logger.info("Crawler scheduler closed")

    def get_stats(self) -> Dict:
        """Get current crawl statistics."""
        stats = self.stats.to_dict()
        stats['is_running'] = self.is_running
        return stats
