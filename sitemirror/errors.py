"""
Error types raised by the mirroring crawler.
"""

from typing import Optional


class MirrorError(Exception):
    """Base class for all crawler errors."""
    pass


class ConfigError(MirrorError):
    """Invalid configuration detected before the crawl starts. Fatal."""
    pass


class FetchError(MirrorError):
    """A resource could not be retrieved. The task is dropped."""

    def __init__(self, url: str, message: str = "", status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        if not message:
            message = f"HTTP status {status_code}" if status_code is not None else "fetch failed"
        super().__init__(message)


class PersistError(MirrorError):
    """A fetched resource could not be written into the mirror."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(message)


class ResolveError(MirrorError):
    """A link could not be resolved to an absolute URL."""
    pass
