"""
Tests for URL resolution and download policy.
"""

import pytest

from sitemirror.crawler.urls import (
    is_valid_link, resolve_url, normalize_url, hostname, should_download
)


BASE = 'http://ex.test/docs/guide/page.html'


@pytest.mark.parametrize('link', ['', '   ', '#top', '#', 'javascript:void(0)',
                                  'JavaScript:alert(1)', 'mailto:someone@ex.test',
                                  'MAILTO:x@y.z'])
def test_rejected_links(link):
    assert not is_valid_link(link)
    assert resolve_url(link, BASE) is None


def test_absolute_url_is_returned_unchanged():
    url = 'https://Other.test/Path/x.html?q=1#frag'
    assert resolve_url(url, BASE) == url


def test_absolute_url_surrounding_whitespace_is_stripped():
    assert resolve_url('  http://ex.test/b.html\n', BASE) == 'http://ex.test/b.html'


def test_path_relative():
    assert resolve_url('other.html', BASE) == 'http://ex.test/docs/guide/other.html'
    assert resolve_url('../img/x.png', BASE) == 'http://ex.test/docs/img/x.png'


def test_root_relative():
    assert resolve_url('/b.html', BASE) == 'http://ex.test/b.html'


def test_scheme_relative():
    assert resolve_url('//cdn.test/lib.js', BASE) == 'http://cdn.test/lib.js'
    assert resolve_url('//cdn.test/lib.js', 'https://ex.test/') == 'https://cdn.test/lib.js'


def test_query_only_reference():
    assert resolve_url('?page=2', BASE) == 'http://ex.test/docs/guide/page.html?page=2'


def test_malformed_authority_is_dropped():
    assert resolve_url('http://[not-an-ip/x', BASE) is None


def test_normalize_strips_fragment_and_lowercases_host():
    assert normalize_url('HTTP://Ex.Test/A.html?x=1#part') == 'http://ex.test/A.html?x=1'


def test_normalize_removes_dot_segments():
    assert normalize_url('http://ex.test/x/../b.html') == 'http://ex.test/b.html'
    assert normalize_url('http://ex.test/a/./b/') == 'http://ex.test/a/b/'
    assert normalize_url('http://ex.test/a/b/..') == 'http://ex.test/a/'
    assert normalize_url('http://ex.test/../../c.html?q=./x') == 'http://ex.test/c.html?q=./x'


def test_normalize_leaves_plain_paths_alone():
    assert normalize_url('http://ex.test/a/b/') == 'http://ex.test/a/b/'
    assert normalize_url('http://ex.test') == 'http://ex.test'


def test_hostname():
    assert hostname('http://Ex.Test:8080/x') == 'ex.test'
    assert hostname('b.html') == ''


class TestShouldDownload:

    def test_same_host_allowed(self):
        assert should_download('http://ex.test/b.html', 'ex.test', same_domain=True)

    def test_other_host_rejected_when_same_domain(self):
        assert not should_download('http://other.test/c.html', 'ex.test', same_domain=True)

    def test_other_host_allowed_without_same_domain(self):
        assert should_download('http://other.test/c.html', 'ex.test', same_domain=False)

    @pytest.mark.parametrize('url', ['ftp://ex.test/file', 'data:text/plain,hi', 'file:///etc/passwd'])
    def test_non_http_schemes_rejected(self, url):
        assert not should_download(url, 'ex.test', same_domain=False)

    def test_host_comparison_ignores_case_and_port(self):
        assert should_download('https://EX.test:8443/b', 'ex.test', same_domain=True)
