"""
URL resolution and download policy.

Everything here is pure string/URL algebra; no network access happens.
"""

import logging
import posixpath
from typing import Optional
from urllib.parse import urljoin, urlparse, urlunparse

from ..errors import ResolveError


ALLOWED_SCHEMES = ('http', 'https')
_REJECTED_PREFIXES = ('javascript:', 'mailto:')

logger = logging.getLogger(__name__)


def is_valid_link(link: str) -> bool:
    """Check whether a raw link is worth resolving at all."""
    if not link or not link.strip():
        return False
    link = link.strip()
    if link.startswith('#'):
        return False
    return not link.lower().startswith(_REJECTED_PREFIXES)


def _resolve(link: str, base_url: str) -> str:
    if not is_valid_link(link):
        raise ResolveError(f"Rejected link: {link!r}")

    link = link.strip()
    try:
        parsed = urlparse(link)
        # Touch the port so malformed authorities fail here
        parsed.port
    except ValueError as e:
        raise ResolveError(f"Malformed link {link!r}: {e}") from e

    # Already absolute
    if parsed.scheme and parsed.netloc:
        return link

    try:
        resolved = urljoin(base_url, link)
    except ValueError as e:
        raise ResolveError(f"Cannot resolve {link!r} against {base_url}: {e}") from e

    if not urlparse(resolved).scheme:
        raise ResolveError(f"Resolved link is not absolute: {resolved!r}")
    return resolved


def resolve_url(link: str, base_url: str) -> Optional[str]:
    """
    Resolve a raw link against the URL of the page it was found on.

    Handles path-relative (``b.html``), root-relative (``/b.html``) and
    scheme-relative (``//host/b.html``) references. Absolute links are
    returned unchanged.

    Returns:
        The absolute URL, or None if the link is rejected or malformed
    """
    try:
        return _resolve(link, base_url)
    except ResolveError as e:
        logger.debug(f"Dropping link: {e}")
        return None


def _remove_dot_segments(path: str) -> str:
    segments = path.split('/')
    if '.' not in segments and '..' not in segments:
        return path

    normalized = posixpath.normpath(path)
    if segments[-1] in ('', '.', '..') and not normalized.endswith('/'):
        normalized += '/'
    return normalized


def normalize_url(url: str) -> str:
    """Normalize URL for deduplication: lowercase host, no dot segments, no fragment."""
    try:
        parsed = urlparse(url)
        return urlunparse((
            parsed.scheme.lower(),
            parsed.netloc.lower(),
            _remove_dot_segments(parsed.path),
            parsed.params,
            parsed.query,
            ''  # Remove fragment
        ))
    except ValueError:
        return url


def hostname(url: str) -> str:
    """Lowercase hostname of ``url``, or an empty string."""
    try:
        return (urlparse(url).hostname or '').lower()
    except ValueError:
        return ''


def should_download(url: str, seed_host: str, same_domain: bool) -> bool:
    """Check if a discovered URL may be queued for download."""
    try:
        parsed = urlparse(url)
        host = (parsed.hostname or '').lower()
    except ValueError:
        return False

    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not host:
        return False

    if same_domain and host != seed_host.lower():
        return False

    return True
