"""
Tests for rewriting page references to mirror paths.
"""

import posixpath

from sitemirror.crawler.parser import find_all
from sitemirror.crawler.rewriter import LinkRewriter, REWRITE_TARGETS
from sitemirror.crawler.urls import resolve_url
from sitemirror.storage.mirror import url_to_local_path


PAGE = 'http://ex.test/a.html'


def rewrite(html: bytes, base: str = PAGE) -> bytes:
    return LinkRewriter().rewrite(html, base)


def test_same_domain_root_relative_link():
    assert rewrite(b'<a href="/b.html">B</a>') == b'<a href="b.html">B</a>'


def test_same_domain_absolute_resource():
    assert rewrite(b'<img src="http://ex.test/img/x.png">') == b'<img src="img/x.png">'


def test_cross_domain_reference_is_untouched():
    html = b'<a href="http://other.test/c.html">C</a>'
    assert rewrite(html) == html


def test_unresolvable_references_are_untouched():
    html = b'<a href="#top">t</a><a href="javascript:go()">j</a><a href="mailto:x@ex.test">m</a>'
    assert rewrite(html) == html


def test_directory_link_maps_to_index_document():
    assert rewrite(b'<a href="/docs/">docs</a>') == b'<a href="docs/index.html">docs</a>'


def test_query_and_fragment_are_preserved():
    out = rewrite(b'<a href="/list.php?page=2#results">next</a>')
    assert out == b'<a href="list.php?page=2#results">next</a>'


def test_paths_are_relative_to_the_page_location():
    base = 'http://ex.test/docs/guide/intro.html'
    html = b'<a href="/b.html">up</a><link href="/docs/guide/style.css"><a href="/">home</a>'
    out = rewrite(html, base)
    assert out == b'<a href="../../b.html">up</a><link href="style.css"><a href="../../index.html">home</a>'


def test_everything_outside_attribute_values_is_preserved():
    html = (b'<!DOCTYPE html>\n<HTML>\n<A  class="nav"  HREF=\'/b.html\'  >B</A>\n'
            b'<p>text with <b>markup</b></p>\n</HTML>')
    out = rewrite(html)
    assert out == html.replace(b"'/b.html'", b"'b.html'")


def test_all_rewrite_targets_are_handled():
    html = (b'<a href="/1"><link href="/2"><script src="/3"></script><img src="/4">'
            b'<iframe src="/5"></iframe><embed src="/6"><source src="/7">')
    out = rewrite(html)
    for n in range(1, 8):
        assert f'"{n}"'.encode() in out
    assert len(REWRITE_TARGETS) == 7


def test_input_bytes_are_not_modified():
    html = bytearray(b'<a href="/b.html">')
    original = bytes(html)
    LinkRewriter().rewrite(bytes(html), PAGE)
    assert bytes(html) == original


def test_non_ascii_path_in_legacy_encoding():
    html = '<a href="/café.html">'.encode('latin-1')
    out = LinkRewriter().rewrite(html, PAGE, encoding='latin-1')
    assert out == '<a href="café.html">'.encode('latin-1')


def test_localize_returns_none_for_other_hosts():
    rewriter = LinkRewriter()
    assert rewriter.localize('http://other.test/x', PAGE) is None
    assert rewriter.localize('/x.css', PAGE) == 'x.css'


def test_rewritten_page_only_contains_mirror_paths():
    base = 'http://ex.test/section/page.html'
    html = b'''
        <a href="/b.html">b</a>
        <a href="sub/c.html">c</a>
        <img src="http://ex.test/x.png">
        <script src="//ex.test/js/app.js"></script>
        <a href="http://other.test/c.html">external</a>
    '''
    out = rewrite(html, base)
    page_dir = posixpath.dirname(url_to_local_path(base))

    for tag, attribute in REWRITE_TARGETS:
        for value in find_all(out, tag, attribute):
            if value == 'http://other.test/c.html':
                continue
            assert not value.startswith('http')
            # Each value points at the mapped path of its original target
            target = posixpath.normpath(posixpath.join(page_dir, value))
            assert target in {
                url_to_local_path(resolve_url(u, base))
                for u in ('/b.html', 'sub/c.html', 'http://ex.test/x.png', '//ex.test/js/app.js')
            }


def test_encoded_url_syntax_in_file_names_stays_encoded():
    # The files are saved as "a?b.html", "c#d.html" and "100%.html"
    html = b'<a href="/a%3Fb.html">x</a><a href="/c%23d.html">y</a><img src="/100%25.png">'
    out = rewrite(html, 'http://ex.test/p.html')
    assert out == b'<a href="a%3Fb.html">x</a><a href="c%23d.html">y</a><img src="100%25.png">'


def test_escaped_name_keeps_query_and_fragment():
    out = rewrite(b'<a href="/a%3Fb.html?page=2#top">x</a>')
    assert out == b'<a href="a%3Fb.html?page=2#top">x</a>'
