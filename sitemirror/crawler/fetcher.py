"""
Web resource fetcher built on aiohttp.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

import aiohttp
from aiohttp import ClientSession, ClientTimeout

from ..errors import FetchError


@dataclass
class FetchResult:
    """Result of a successful fetch."""
    url: str
    status_code: int
    content: bytes = b''
    content_type: str = ''
    headers: Dict[str, str] = field(default_factory=dict)
    fetch_time: float = 0.0


class WebFetcher:
    """
    Fetches single URLs with a fixed timeout and client identity.

    There are no retries: a failed fetch raises and the caller drops the task.
    """

    def __init__(self, user_agent: str, request_timeout: float = 30,
                 max_concurrent_requests: int = 10,
                 max_content_size: int = 10 * 1024 * 1024):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_concurrent_requests = max_concurrent_requests
        self.max_content_size = max_content_size

        self.logger = logging.getLogger(__name__)
        self.session: Optional[ClientSession] = None

        # Statistics
        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'total_bytes_downloaded': 0
        }

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            timeout = ClientTimeout(total=self.request_timeout)
            headers = {'User-Agent': self.user_agent}

            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(
                    limit=self.max_concurrent_requests * 2,
                    limit_per_host=self.max_concurrent_requests,
                    ttl_dns_cache=300,
                    use_dns_cache=True
                )
            )
            self.logger.debug("WebFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("WebFetcher session closed")

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch a single URL.

        Args:
            url: The absolute URL to fetch

        Returns:
            FetchResult with the raw body and its content type

        Raises:
            FetchError: on a non-2xx status or an oversized body
            aiohttp.ClientError, asyncio.TimeoutError: transport failures,
                passed through unchanged
        """
        if self.session is None:
            await self.start()

        start_time = time.time()
        self.stats['total_requests'] += 1

        try:
            async with self.session.get(url) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(url, status_code=response.status)

                content = await self._read_content_safely(response, url)
                result = FetchResult(
                    url=url,
                    status_code=response.status,
                    content=content,
                    content_type=response.headers.get('Content-Type', ''),
                    headers=dict(response.headers),
                    fetch_time=time.time() - start_time
                )
        except (FetchError, aiohttp.ClientError, asyncio.TimeoutError):
            self.stats['failed_requests'] += 1
            raise

        self.stats['successful_requests'] += 1
        self.stats['total_bytes_downloaded'] += len(result.content)
        self.logger.debug(f"Fetched {url}: {result.status_code} ({len(result.content)} bytes)")
        return result

    async def _read_content_safely(self, response, url: str) -> bytes:
        """Read the body, refusing anything larger than ``max_content_size``."""
        content_length = response.headers.get('Content-Length')
        if content_length and content_length.isdigit() and int(content_length) > self.max_content_size:
            raise FetchError(url, f"Content too large ({content_length} bytes)")

        chunks = []
        size = 0
        async for chunk in response.content.iter_chunked(8192):
            size += len(chunk)
            if size > self.max_content_size:
                raise FetchError(url, f"Content exceeded size limit of {self.max_content_size} bytes")
            chunks.append(chunk)

        return b''.join(chunks)

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()
