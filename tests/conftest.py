"""
Shared fixtures for the site-mirror test suite.
"""

import asyncio
from collections import Counter
from typing import Dict, Tuple, Union

import pytest

from sitemirror.crawler.fetcher import FetchResult
from sitemirror.errors import FetchError
from sitemirror.utils.config import Config, CrawlConfig


Response = Union[Tuple[bytes, str], int, Exception]


class ScriptedFetcher:
    """
    In-memory fetcher serving canned responses.

    A response is ``(body, content_type)``, an HTTP status code (non-2xx
    raises FetchError) or an exception instance to raise. Unknown URLs are
    404. Every call is recorded so tests can assert fetch-once behaviour.
    """

    def __init__(self, responses: Dict[str, Response], delay: float = 0.0):
        self.responses = responses
        self.delay = delay
        self.calls = Counter()
        self.started = False
        self.closed = False

    async def start(self):
        self.started = True

    async def close(self):
        self.closed = True

    async def fetch(self, url: str) -> FetchResult:
        self.calls[url] += 1
        # Yield so concurrent workers interleave like real network I/O
        await asyncio.sleep(self.delay)

        response = self.responses.get(url, 404)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, int):
            raise FetchError(url, status_code=response)

        body, content_type = response
        return FetchResult(url=url, status_code=200, content=body, content_type=content_type)

    def get_stats(self):
        return dict(self.calls)


HTML = 'text/html; charset=utf-8'


@pytest.fixture
def make_config(tmp_path):
    """Factory for a Config whose mirror lives in the test's tmp dir."""

    def _make(seed_url: str = 'http://ex.test/a.html', **crawl_options) -> Config:
        crawl_options.setdefault('output_dir', str(tmp_path / 'mirror'))
        crawl_options.setdefault('workers', 3)
        return Config(crawl=CrawlConfig(seed_url=seed_url, **crawl_options))

    return _make
