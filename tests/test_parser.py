"""
Tests for the substring-based link extractor.
"""

from sitemirror.crawler.parser import (
    ContentParser, find_all, iter_attribute_spans, detect_encoding, is_html_content
)


def test_double_and_single_quotes():
    html = b'<a href="one.html">1</a><a href=\'two.html\'>2</a>'
    assert find_all(html, 'a', 'href') == ['one.html', 'two.html']


def test_case_insensitive_tag_and_attribute():
    html = b'<A HREF="up.html">x</A><Img SrC="pic.png">'
    assert find_all(html, 'a', 'href') == ['up.html']
    assert find_all(html, 'img', 'src') == ['pic.png']


def test_preserves_original_case_of_value():
    assert find_all(b'<a href="/Docs/Index.HTML">', 'a', 'href') == ['/Docs/Index.HTML']


def test_document_order_and_exact_duplicates_removed():
    html = b'<a href="b">b</a><a href="a">a</a><a href="b">again</a><a href="B">upper</a>'
    assert find_all(html, 'a', 'href') == ['b', 'a', 'B']


def test_tag_prefix_does_not_match_longer_tag_names():
    html = b'<abbr href="no.html">x</abbr><area href="no2.html"><a href="yes.html">'
    assert find_all(html, 'a', 'href') == ['yes.html']


def test_attribute_suffix_does_not_match():
    html = b'<a data-href="no.html" href="yes.html">'
    assert find_all(html, 'a', 'href') == ['yes.html']


def test_whitespace_around_equals():
    assert find_all(b'<img src = "x.png">', 'img', 'src') == ['x.png']


def test_value_ends_at_matching_quote():
    html = b'<img alt="x" src="it\'s.png">'
    assert find_all(html, 'img', 'src') == ["it's.png"]


def test_unterminated_tag_yields_nothing():
    assert find_all(b'<a href="never-closed.html"', 'a', 'href') == []


def test_unterminated_quote_yields_nothing():
    assert find_all(b'<a href="broken>text</a><a href="ok.html">', 'a', 'href') == ['ok.html']


def test_unquoted_attribute_is_not_matched():
    assert find_all(b'<a href=plain.html>', 'a', 'href') == []


def test_self_closing_and_multiline_tags():
    html = b'<link\n  rel="stylesheet"\n  href="style.css"/>'
    assert find_all(html, 'link', 'href') == ['style.css']


def test_spans_point_at_value_bytes():
    html = b'<script src="app.js"></script>'
    spans = list(iter_attribute_spans(html, 'script', 'src'))
    assert [html[s:e] for s, e in spans] == [b'app.js']


def test_no_tags_in_plain_text():
    assert find_all(b'just some text, no markup at all', 'a', 'href') == []


def test_decodes_with_document_encoding():
    html = '<a href="café.html">'.encode('latin-1')
    assert find_all(html, 'a', 'href', encoding='latin-1') == ['café.html']


class TestEncoding:

    def test_charset_from_content_type(self):
        assert detect_encoding(b'<html></html>', 'text/html; charset=ISO-8859-1') == 'iso8859-1'

    def test_meta_charset_is_sniffed(self):
        html = b'<html><head><meta charset="windows-1252"></head><body>\x93hi\x94</body></html>'
        assert detect_encoding(html, 'text/html') == 'cp1252'

    def test_ascii_falls_back_to_utf8(self):
        assert detect_encoding(b'<html>plain</html>', 'text/html') == 'utf-8'

    def test_unknown_charset_is_ignored(self):
        assert detect_encoding(b'<p>x</p>', 'text/html; charset=bogus-enc') == 'utf-8'


def test_is_html_content():
    assert is_html_content('text/html; charset=utf-8')
    assert is_html_content('application/xhtml+xml')
    assert not is_html_content('image/png')
    assert not is_html_content('')
    assert not is_html_content(None)


class TestContentParser:

    def test_pages_and_resources_are_split_and_resolved(self):
        html = b'''
            <html><head>
              <link rel="stylesheet" href="/css/site.css">
              <script src="js/app.js"></script>
            </head><body>
              <a href="/b.html">B</a>
              <a href="http://other.test/c.html">C</a>
              <a href="#top">top</a>
              <a href="mailto:me@ex.test">mail</a>
              <img src="http://ex.test/x.png">
              <iframe src="frame.html"></iframe>
              <embed src="movie.swf">
              <video><source src="clip.mp4"></video>
            </body></html>
        '''
        parsed = ContentParser().parse('http://ex.test/a.html', html, 'text/html')

        assert parsed.pages == ['http://ex.test/b.html', 'http://other.test/c.html']
        assert parsed.resources == [
            'http://ex.test/css/site.css',
            'http://ex.test/js/app.js',
            'http://ex.test/x.png',
            'http://ex.test/frame.html',
            'http://ex.test/movie.swf',
            'http://ex.test/clip.mp4',
        ]

    def test_links_differing_only_by_fragment_collapse(self):
        html = b'<a href="/b.html#one">1</a><a href="/b.html#two">2</a>'
        parsed = ContentParser().parse('http://ex.test/', html, 'text/html')
        assert parsed.pages == ['http://ex.test/b.html']

    def test_encoding_is_reported(self):
        parsed = ContentParser().parse('http://ex.test/', b'<p></p>', 'text/html; charset=latin-1')
        assert parsed.encoding == 'iso8859-1'
