"""Tests for single-fetch page analysis."""

import pytest

from site_audit.config import AuditThresholds
from site_audit.issues import generate_security_issues
from site_audit.models import SecurityIssueType
from site_audit.page_analyzer import PageAnalyzer

PAGE = "https://www.example.com/shop/item"


@pytest.fixture
def analyzer(client):
    return PageAnalyzer(client)


class TestExtractOutboundUrls:
    """Test cases for link and image collection."""

    def test_links_resolved_and_deduplicated(self, analyzer):
        html = """
        <html><body>
            <a href="/about">About</a>
            <a href="/about">About again</a>
            <a href="other">Relative</a>
            <a href="https://partner.example.org/">Partner</a>
            <a href="mailto:info@example.com">Mail</a>
            <a href="#top">Top</a>
        </body></html>
        """
        analysis = analyzer.extract(PAGE, html)

        assert analysis.links == [
            "https://www.example.com/about",
            "https://www.example.com/shop/other",
            "https://partner.example.org/",
        ]

    def test_images_include_srcset_candidates(self, analyzer):
        html = """
        <html><body>
            <img src="/img/a.jpg" alt="a">
            <img src="/img/b.jpg" srcset="/img/b-2x.jpg 2x, /img/b.jpg 1x" alt="b">
            <picture><source srcset="/img/c.webp"></picture>
        </body></html>
        """
        analysis = analyzer.extract(PAGE, html)

        assert analysis.images == [
            "https://www.example.com/img/a.jpg",
            "https://www.example.com/img/b.jpg",
            "https://www.example.com/img/b-2x.jpg",
            "https://www.example.com/img/c.webp",
        ]


class TestExtractStructure:
    """Test cases for title, headings and accessibility facts."""

    def test_title_and_headings(self, analyzer):
        html = """
        <html><head><title>  Shop  </title></head><body>
            <h1>First</h1><h2>Sub</h2><h4>Deep</h4><h1>Second</h1>
        </body></html>
        """
        analysis = analyzer.extract(PAGE, html)

        assert analysis.title == "Shop"
        assert analysis.h1_count == 2
        assert analysis.h1_texts == ["First", "Second"]
        assert analysis.heading_hierarchy == ["h1", "h2", "h4", "h1"]

    def test_empty_title_is_none(self, analyzer):
        analysis = analyzer.extract(PAGE, "<html><head><title> </title></head><body></body></html>")
        assert analysis.title is None

    def test_images_without_alt_count_is_exact_sample_is_capped(self, client):
        """The count covers every image; the sample list stops at the limit."""
        analyzer = PageAnalyzer(client, thresholds=AuditThresholds(element_sample_limit=3))
        long_name = "x" * 150
        images = "".join(f'<img src="/img/{i}-{long_name}.png">' for i in range(12))
        html = f'<html><body>{images}<img src="/ok.png" alt="fine"><img data-src="/lazy.png"></body></html>'

        analysis = analyzer.extract(PAGE, html)

        assert analysis.images_without_alt == 13
        assert len(analysis.images_without_alt_list) == 3
        assert all(len(src) == 100 for src in analysis.images_without_alt_list)

    def test_empty_links(self, analyzer):
        html = """
        <html><body>
            <a href="#">Back</a>
            <a>Anchor only</a>
            <a href="javascript:void(0)"></a>
            <a href="/real">Real</a>
        </body></html>
        """
        analysis = analyzer.extract(PAGE, html)

        assert analysis.empty_links == 3
        assert analysis.empty_links_list == [
            '"Back" → #',
            '"Anchor only" → [no href]',
            '"[no text]" → javascript:void(0)',
        ]


class TestExtractPerformanceFacts:
    """Test cases for script, style and font counting."""

    def test_scripts_styles_and_render_blocking(self, analyzer):
        html = """
        <html><head>
            <script src="/a.js"></script>
            <script src="/b.js" async></script>
            <script src="/c.js" defer></script>
            <script>inline()</script>
            <link rel="stylesheet" href="/a.css">
            <link rel="preload stylesheet" href="/b.css">
            <link rel="icon" href="/favicon.ico">
        </head><body><script src="/d.js"></script></body></html>
        """
        analysis = analyzer.extract(PAGE, html)

        assert analysis.js_files == 4
        assert analysis.css_files == 2
        assert analysis.render_blocking_scripts == 1
        assert analysis.has_favicon is True

    def test_webfonts_count_links_and_font_faces(self, analyzer):
        html = """
        <html><head>
            <link rel="stylesheet" href="https://fonts.googleapis.com/css2?family=Inter">
            <link rel="preconnect" href="https://fonts.gstatic.com">
            <style>@font-face { font-family: A; } @FONT-FACE { font-family: B; }</style>
        </head><body></body></html>
        """
        analysis = analyzer.extract(PAGE, html)

        assert analysis.webfonts == 4

    def test_lazy_loading_detected(self, analyzer):
        assert analyzer.extract(PAGE, '<img src="/a.png" loading="lazy">').has_lazy_loading is True
        assert analyzer.extract(PAGE, '<img data-lazy="/a.png">').has_lazy_loading is True
        assert analyzer.extract(PAGE, '<img src="/a.png">').has_lazy_loading is False

    def test_page_size_defaults_to_encoded_length(self, analyzer):
        html = "<html><body>čau</body></html>"
        assert analyzer.extract(PAGE, html).page_size == len(html.encode("utf-8"))
        assert analyzer.extract(PAGE, html, page_size=42).page_size == 42


class TestExtractSecurityFacts:
    """Test cases for mixed content and third-party scripts."""

    def test_mixed_content_same_domain_only(self, analyzer):
        html = """
        <html><head>
            <link rel="stylesheet" href="http://example.com/old.css">
        </head><body>
            <img src="http://www.example.com/a.png">
            <img src="http://cdn.other.net/b.png">
            <iframe src="http://www.example.com/embed"></iframe>
            <object data="http://www.example.com/movie.swf"></object>
            <img src="https://www.example.com/c.png">
        </body></html>
        """
        analysis = analyzer.extract(PAGE, html)

        assert analysis.mixed_content == [
            "http://www.example.com/a.png",
            "http://www.example.com/embed",
            "http://www.example.com/movie.swf",
            "http://example.com/old.css",
        ]

    def test_no_mixed_content_on_http_page(self, analyzer):
        html = '<img src="http://www.example.com/a.png">'
        assert analyzer.extract("http://www.example.com/", html).mixed_content == []

    def test_external_scripts(self, analyzer):
        html = """
        <html><head>
            <script src="/local.js"></script>
            <script src="https://www.example.com/abs.js"></script>
            <script src="//cdn.tracker.io/t.js"></script>
            <script src="https://www.googletagmanager.com/gtm.js"></script>
        </head><body></body></html>
        """
        analysis = analyzer.extract(PAGE, html)

        assert analysis.external_scripts == [
            "https://cdn.tracker.io/t.js",
            "https://www.googletagmanager.com/gtm.js",
        ]

    def test_lookalike_host_is_external(self, analyzer):
        """A host that merely starts with the page host is another origin."""
        html = '<script src="https://www.example.com.evil.net/x.js"></script>'
        analysis = analyzer.extract(PAGE, html)

        assert analysis.external_scripts == ["https://www.example.com.evil.net/x.js"]
        issues = generate_security_issues(analysis)
        assert [issue.type for issue in issues] == [SecurityIssueType.UNTRUSTED_SCRIPTS]

    def test_port_decides_origin(self, analyzer):
        """A non-default port is external, the default port is not."""
        html = """
        <script src="https://www.example.com:8443/x.js"></script>
        <script src="https://WWW.example.com:443/y.js"></script>
        """
        analysis = analyzer.extract(PAGE, html)

        assert analysis.external_scripts == ["https://www.example.com:8443/x.js"]


class TestExtractMetadata:
    """Test cases for social and description meta tags."""

    def test_social_tags_meet_thresholds(self, analyzer):
        html = """
        <html><head>
            <meta property="og:title" content="T">
            <meta property="og:type" content="website">
            <meta property="og:image" content="/i.png">
            <meta name="twitter:card" content="summary">
            <meta name="twitter:title" content="T">
            <meta name="description" content="Shop">
        </head><body></body></html>
        """
        analysis = analyzer.extract(PAGE, html)

        assert analysis.has_og_tags is True
        assert analysis.has_twitter_cards is True
        assert analysis.has_meta_description is True

    def test_repeated_tags_count_once(self, analyzer):
        """Duplicate property names do not satisfy the minimum."""
        html = """
        <html><head>
            <meta property="og:image" content="/1.png">
            <meta property="og:image" content="/2.png">
            <meta property="og:image" content="/3.png">
            <meta name="twitter:card" content="summary">
            <meta name="description" content="">
        </head><body></body></html>
        """
        analysis = analyzer.extract(PAGE, html)

        assert analysis.has_og_tags is False
        assert analysis.has_twitter_cards is False
        assert analysis.has_meta_description is False


class TestAnalyze:
    """Test cases for fetching and analyzing a page."""

    @pytest.mark.asyncio
    async def test_analyze_success(self, fake_site, analyzer):
        body = "<html><head><title>Item</title></head><body><h1>Item</h1></body></html>"
        fake_site.add(PAGE, body)

        analysis = await analyzer.analyze(PAGE)

        assert analysis.url == PAGE
        assert analysis.title == "Item"
        assert analysis.page_size == len(body.encode("utf-8"))

    @pytest.mark.asyncio
    async def test_analyze_server_error(self, fake_site, analyzer):
        fake_site.add(PAGE, "boom", status=500)
        assert await analyzer.analyze(PAGE) is None

    @pytest.mark.asyncio
    async def test_analyze_network_error(self, fake_site, analyzer):
        fake_site.fail(PAGE)
        assert await analyzer.analyze(PAGE) is None
