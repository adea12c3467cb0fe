"""
Visited set: the record of every URL already claimed for download.

``claim`` is the only way to mark a URL and it is a single atomic
insert-if-absent, so exactly one worker ever owns a given URL.
"""

import logging
import threading
from typing import Set

import redis.asyncio as redis

from ..utils.config import VisitedConfig


class VisitedSet:
    """Abstract base class for visited-set backends."""

    async def claim(self, url: str) -> bool:
        """Mark ``url`` visited. Returns True only for the first caller."""
        raise NotImplementedError

    async def contains(self, url: str) -> bool:
        raise NotImplementedError

    async def size(self) -> int:
        raise NotImplementedError

    async def clear(self):
        raise NotImplementedError

    async def close(self):
        pass


class MemoryVisitedSet(VisitedSet):
    """Process-local visited set."""

    def __init__(self):
        self._urls: Set[str] = set()
        self._lock = threading.Lock()

    async def claim(self, url: str) -> bool:
        with self._lock:
            if url in self._urls:
                return False
            self._urls.add(url)
            return True

    async def contains(self, url: str) -> bool:
        with self._lock:
            return url in self._urls

    async def size(self) -> int:
        with self._lock:
            return len(self._urls)

    async def clear(self):
        with self._lock:
            self._urls.clear()


class RedisVisitedSet(VisitedSet):
    """
    Visited set stored in a Redis set.

    SADD reports how many members were actually added, which makes it an
    atomic claim even when several crawler processes share the key.
    """

    def __init__(self, redis_client: redis.Redis, key: str = "mirror:visited"):
        self.redis_client = redis_client
        self.key = key
        self.logger = logging.getLogger(__name__)

    async def claim(self, url: str) -> bool:
        added = await self.redis_client.sadd(self.key, url)
        return added == 1

    async def contains(self, url: str) -> bool:
        return bool(await self.redis_client.sismember(self.key, url))

    async def size(self) -> int:
        return await self.redis_client.scard(self.key)

    async def clear(self):
        await self.redis_client.delete(self.key)
        self.logger.debug(f"Cleared visited set {self.key}")

    async def close(self):
        await self.redis_client.close()


def create_visited_set(config: VisitedConfig) -> VisitedSet:
    """Create the visited-set backend selected in the configuration."""
    if config.backend == 'redis':
        client = redis.Redis.from_url(config.redis_url, decode_responses=True)
        return RedisVisitedSet(client, config.key)
    return MemoryVisitedSet()
