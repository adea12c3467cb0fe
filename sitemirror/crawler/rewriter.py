"""
Rewrites same-site references in a page to point at the mirrored copies.
"""

import logging
import posixpath
from typing import Iterable, Optional, Tuple
from urllib.parse import urlparse

from .parser import PAGE_TARGETS, RESOURCE_TARGETS, iter_attribute_spans
from .urls import resolve_url, hostname
from ..storage.mirror import url_to_local_path


REWRITE_TARGETS: Tuple[Tuple[str, str], ...] = PAGE_TARGETS + RESOURCE_TARGETS

# Characters in a decoded file name that would otherwise read as URL syntax
_PATH_ESCAPES = str.maketrans({'%': '%25', '?': '%3F', '#': '%23'})


class LinkRewriter:
    """
    Replaces attribute values with local mirror paths.

    A reference is rewritten when it resolves to an absolute URL on the same
    host as the page. The replacement is the target's mirror path relative
    to the page's own mirror path, with the original query and fragment
    appended. Everything else is left byte-for-byte unchanged.
    """

    def __init__(self, targets: Iterable[Tuple[str, str]] = REWRITE_TARGETS):
        self.targets = tuple(targets)
        self.logger = logging.getLogger(__name__)

    def localize(self, link: str, base_url: str) -> Optional[str]:
        """Return the local replacement for ``link``, or None to keep it."""
        absolute_url = resolve_url(link, base_url)
        if absolute_url is None:
            return None

        page_host = hostname(base_url)
        if not page_host or hostname(absolute_url) != page_host:
            return None

        parsed = urlparse(absolute_url)
        if parsed.scheme.lower() not in ('http', 'https'):
            return None

        page_dir = posixpath.dirname(url_to_local_path(base_url))
        local = posixpath.relpath(url_to_local_path(absolute_url), page_dir)
        local = local.translate(_PATH_ESCAPES)

        if parsed.query:
            local += '?' + parsed.query
        if parsed.fragment:
            local += '#' + parsed.fragment
        return local

    def _rewrite_target(self, content: bytes, base_url: str, tag: str,
                        attribute: str, encoding: str) -> Tuple[bytes, int]:
        parts = []
        pos = 0
        replaced = 0

        for start, end in iter_attribute_spans(content, tag, attribute):
            raw = content[start:end].decode(encoding, errors='replace')
            local = self.localize(raw, base_url)
            if local is None:
                continue
            parts.append(content[pos:start])
            parts.append(local.encode(encoding, errors='xmlcharrefreplace'))
            pos = end
            replaced += 1

        if not replaced:
            return content, 0
        parts.append(content[pos:])
        return b''.join(parts), replaced

    def rewrite(self, content: bytes, base_url: str, encoding: str = 'utf-8') -> bytes:
        """
        Rewrite every configured tag/attribute pair in ``content``.

        Args:
            content: Original page bytes
            base_url: URL the page was fetched from
            encoding: Document encoding (see parser.detect_encoding)

        Returns:
            New page bytes; the input is not modified
        """
        total = 0
        for tag, attribute in self.targets:
            content, replaced = self._rewrite_target(content, base_url, tag, attribute, encoding)
            total += replaced

        self.logger.debug(f"Rewrote {total} references in {base_url}")
        return content
