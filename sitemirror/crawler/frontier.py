"""
Crawl frontier: download tasks and the bounded queue that carries them.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TaskKind(Enum):
    """What a task downloads. Only pages are ever expanded."""
    PAGE = "page"
    RESOURCE = "resource"


@dataclass(frozen=True)
class DownloadTask:
    """Represents one unit of crawl work."""
    url: str
    depth: int
    kind: TaskKind = TaskKind.PAGE
    parent_url: Optional[str] = None

    @property
    def expandable(self) -> bool:
        return self.kind is TaskKind.PAGE


class URLFrontier:
    """
    Bounded task queue with in-flight accounting.

    Every task is registered when it is created and finished when it reaches
    a terminal state. When the in-flight count drops to zero the frontier
    closes: one sentinel per worker is enqueued and ``get`` returns None.
    """

    def __init__(self, maxsize: int, workers: int):
        self.workers = workers
        # Room for the closing sentinels even with a tiny queue
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max(maxsize, workers))
        self.logger = logging.getLogger(__name__)

        self.in_flight = 0
        self.created = 0
        self.finished = 0
        self.blocked_putters = 0
        self.closed = False

    def register(self, task: DownloadTask):
        """Count a newly created task as in flight."""
        if self.closed:
            raise RuntimeError(f"Frontier is closed, cannot accept {task.url}")
        self.in_flight += 1
        self.created += 1

    def must_run_inline(self) -> bool:
        """
        True when a worker enqueueing now could never be unblocked.

        That happens when the queue is full and every other worker is
        already waiting to enqueue.
        """
        return self.queue.full() and self.blocked_putters >= self.workers - 1

    async def put(self, task: DownloadTask):
        """Enqueue a registered task, waiting while the queue is full."""
        self.blocked_putters += 1
        try:
            await self.queue.put(task)
        finally:
            self.blocked_putters -= 1

    async def get(self) -> Optional[DownloadTask]:
        """Dequeue the next task, or None once the frontier is closed."""
        return await self.queue.get()

    def task_finished(self):
        """Record that a task reached a terminal state."""
        self.in_flight -= 1
        self.finished += 1
        if self.in_flight == 0:
            self.close()

    def close(self):
        if self.closed:
            return
        self.closed = True
        for _ in range(self.workers):
            self.queue.put_nowait(None)
        self.logger.debug(f"Frontier closed after {self.created} tasks")

    def qsize(self) -> int:
        return self.queue.qsize()
