"""
Mirroring crawler core components.
"""

from .frontier import URLFrontier, DownloadTask, TaskKind
from .fetcher import WebFetcher, FetchResult
from .parser import ContentParser, ParsedLinks, find_all
from .rewriter import LinkRewriter
from .scheduler import CrawlerScheduler, CrawlStats
from .urls import resolve_url, normalize_url, should_download

__all__ = [
    'URLFrontier', 'DownloadTask', 'TaskKind',
    'WebFetcher', 'FetchResult',
    'ContentParser', 'ParsedLinks', 'find_all',
    'LinkRewriter',
    'CrawlerScheduler', 'CrawlStats',
    'resolve_url', 'normalize_url', 'should_download'
]
