"""
Permissive link extraction from raw page bytes.

This is a linear substring scan, not a markup parser: it looks for literal
``<tag`` starts, treats the next ``>`` as the end of the tag and searches
the text in between for ``attribute="..."`` or ``attribute='...'``.
Malformed markup yields no match instead of an error.
"""

import codecs
import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from bs4 import UnicodeDammit

from .urls import resolve_url, normalize_url


# Hyperlinks that lead to further pages
PAGE_TARGETS: Tuple[Tuple[str, str], ...] = (
    ('a', 'href'),
)

# Embedded resources a page needs to render
RESOURCE_TARGETS: Tuple[Tuple[str, str], ...] = (
    ('link', 'href'),
    ('script', 'src'),
    ('img', 'src'),
    ('iframe', 'src'),
    ('embed', 'src'),
    ('source', 'src'),
)

HTML_CONTENT_TYPES = ('text/html', 'application/xhtml+xml')

_TAG_BOUNDARY = b' \t\r\n\f/>'
_CHARSET_PATTERN = re.compile(r'charset\s*=\s*["\']?([\w.:-]+)', re.IGNORECASE)
_attribute_patterns = {}


@dataclass
class ParsedLinks:
    """Links discovered on one page, resolved to absolute URLs."""
    url: str
    encoding: str = 'utf-8'
    pages: List[str] = field(default_factory=list)
    resources: List[str] = field(default_factory=list)


def _attribute_pattern(attribute: bytes):
    pattern = _attribute_patterns.get(attribute)
    if pattern is None:
        # Not preceded by a name character, so "href" never matches "data-href"
        pattern = re.compile(rb'(?<![\w:-])' + re.escape(attribute) + rb'\s*=\s*(["\'])')
        _attribute_patterns[attribute] = pattern
    return pattern


def iter_attribute_spans(content: bytes, tag: str, attribute: str) -> Iterator[Tuple[int, int]]:
    """
    Yield ``(start, end)`` byte offsets of every matching attribute value.

    Tag and attribute names match case-insensitively. The value runs from
    the opening quote to the next occurrence of the same quote character
    inside the tag.
    """
    lowered = content.lower()
    tag_start = b'<' + tag.lower().encode('ascii')
    pattern = _attribute_pattern(attribute.lower().encode('ascii'))
    pos = 0

    while True:
        tag_pos = lowered.find(tag_start, pos)
        if tag_pos == -1:
            return

        name_end = tag_pos + len(tag_start)
        # "<a" must not match "<abbr" or "<area"
        if name_end < len(lowered) and lowered[name_end:name_end + 1] not in _TAG_BOUNDARY:
            pos = name_end
            continue

        end_pos = lowered.find(b'>', name_end)
        if end_pos == -1:
            return

        match = pattern.search(lowered, name_end, end_pos)
        if match:
            start = match.end()
            close = lowered.find(match.group(1), start, end_pos)
            if close != -1:
                yield start, close

        pos = end_pos + 1


def find_all(content: bytes, tag: str, attribute: str, encoding: str = 'utf-8') -> List[str]:
    """
    Find all values of ``attribute`` on ``tag`` elements, in document order.

    Exact duplicates are removed; the first occurrence wins.
    """
    seen = set()
    results = []
    for start, end in iter_attribute_spans(content, tag, attribute):
        value = content[start:end].decode(encoding, errors='replace')
        if value not in seen:
            seen.add(value)
            results.append(value)
    return results


def is_html_content(content_type: Optional[str]) -> bool:
    """Check if a Content-Type denotes an HTML document."""
    content_type = (content_type or '').lower()
    return any(html_type in content_type for html_type in HTML_CONTENT_TYPES)


def _known_encoding(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    try:
        encoding = codecs.lookup(name).name
    except LookupError:
        return None
    # Pure ASCII pages are written back as UTF-8
    return 'utf-8' if encoding == 'ascii' else encoding


def detect_encoding(content: bytes, content_type: Optional[str] = None) -> str:
    """
    Determine the character encoding of a document.

    The charset parameter of the Content-Type header wins; otherwise the
    document is sniffed (BOM, meta charset declaration, trial decoding).
    """
    match = _CHARSET_PATTERN.search(content_type or '')
    if match:
        encoding = _known_encoding(match.group(1))
        if encoding:
            return encoding

    dammit = UnicodeDammit(content, is_html=True)
    return _known_encoding(dammit.original_encoding) or 'utf-8'


class ContentParser:
    """Extracts page links and resource references from HTML documents."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def _collect(self, content: bytes, base_url: str, targets, encoding: str) -> List[str]:
        links = []
        seen = set()
        for tag, attribute in targets:
            for raw in find_all(content, tag, attribute, encoding):
                absolute_url = resolve_url(raw, base_url)
                if absolute_url is None:
                    continue
                normalized_url = normalize_url(absolute_url)
                if normalized_url not in seen:
                    seen.add(normalized_url)
                    links.append(normalized_url)
        return links

    def parse(self, url: str, content: bytes, content_type: Optional[str] = None) -> ParsedLinks:
        """
        Extract links from a document.

        Args:
            url: The URL the document was fetched from (base for resolution)
            content: Raw document bytes
            content_type: Content-Type header, used for charset detection

        Returns:
            ParsedLinks with absolute, fragment-free, deduplicated URLs
        """
        encoding = detect_encoding(content, content_type)
        parsed = ParsedLinks(
            url=url,
            encoding=encoding,
            pages=self._collect(content, url, PAGE_TARGETS, encoding),
            resources=self._collect(content, url, RESOURCE_TARGETS, encoding),
        )

        self.logger.debug(f"Parsed {url}: {len(parsed.pages)} links, "
                          f"{len(parsed.resources)} resources ({encoding})")
        return parsed
