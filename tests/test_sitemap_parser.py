"""Tests for sitemap discovery and parsing."""

from datetime import datetime, timezone

import pytest

from site_audit.sitemap_parser import SitemapParser, parse_lastmod, parse_sitemap_xml

URLSET = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://www.example.com/</loc><lastmod>2024-03-01</lastmod></url>
  <url><loc>https://www.example.com/about</loc><lastmod>2024-03-05T10:00:00Z</lastmod></url>
  <url><loc> https://www.example.com/contact </loc></url>
</urlset>
"""

INDEX = """<?xml version="1.0" encoding="UTF-8"?>
<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <sitemap><loc>https://www.example.com/sitemap-pages.xml</loc></sitemap>
  <sitemap><loc>https://www.example.com/sitemap-broken.xml</loc></sitemap>
  <sitemap><loc>https://www.example.com/sitemap-products.xml</loc></sitemap>
</sitemapindex>
"""

PRODUCTS = """<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://www.example.com/p/1</loc><lastmod>2024-04-01</lastmod></url>
  <url><loc>https://www.example.com/about</loc></url>
</urlset>
"""


class TestParseSitemapXml:
    """Test cases for parse_sitemap_xml."""

    def test_urlset(self):
        parsed = parse_sitemap_xml(URLSET)

        assert parsed.is_index is False
        assert parsed.urls == [
            "https://www.example.com/",
            "https://www.example.com/about",
            "https://www.example.com/contact",
        ]
        assert len(parsed.lastmods) == 2

    def test_index(self):
        parsed = parse_sitemap_xml(INDEX)

        assert parsed.is_index is True
        assert parsed.urls == []
        assert len(parsed.child_sitemaps) == 3

    def test_without_namespace(self):
        parsed = parse_sitemap_xml("<urlset><url><loc>https://a.example/</loc></url></urlset>")
        assert parsed.urls == ["https://a.example/"]

    def test_malformed_returns_none(self):
        assert parse_sitemap_xml("<urlset><url><loc>broken") is None
        assert parse_sitemap_xml("<html><body>Not found</body></html>") is None


class TestParseLastmod:
    """Test cases for lastmod parsing."""

    def test_date_only_is_utc(self):
        assert parse_lastmod("2024-03-01") == datetime(2024, 3, 1, tzinfo=timezone.utc)

    def test_z_suffix(self):
        assert parse_lastmod("2024-03-05T10:00:00Z") == datetime(2024, 3, 5, 10, tzinfo=timezone.utc)

    def test_offset(self):
        parsed = parse_lastmod("2024-03-05T12:00:00+02:00")
        assert parsed == datetime(2024, 3, 5, 10, tzinfo=timezone.utc)

    def test_garbage(self):
        assert parse_lastmod("yesterday") is None


class TestSitemapParser:
    """Test cases for fetching sitemaps over HTTP."""

    @pytest.mark.asyncio
    async def test_discover_plain_sitemap(self, fake_site, client):
        fake_site.add("https://www.example.com/sitemap.xml", URLSET, content_type="application/xml")

        urls = await SitemapParser(client).discover("https://www.example.com")

        assert urls[0] == "https://www.example.com/"
        assert len(urls) == 3

    @pytest.mark.asyncio
    async def test_discover_falls_through_paths(self, fake_site, client):
        """Missing and malformed candidates fall through to the next path."""
        fake_site.add("https://www.example.com/sitemap.xml", "<urlset><url>")
        fake_site.add("https://www.example.com/sitemap-index.xml", URLSET)

        urls = await SitemapParser(client).discover("https://www.example.com")

        assert len(urls) == 3
        assert fake_site.requested() == [
            "https://www.example.com/sitemap.xml",
            "https://www.example.com/sitemap_index.xml",
            "https://www.example.com/sitemap-index.xml",
        ]

    @pytest.mark.asyncio
    async def test_index_unions_nested_sitemaps(self, fake_site, client):
        """Nested sitemaps are merged; broken ones are skipped."""
        fake_site.add("https://www.example.com/sitemap.xml", INDEX)
        fake_site.add("https://www.example.com/sitemap-pages.xml", URLSET)
        fake_site.add("https://www.example.com/sitemap-products.xml", PRODUCTS)

        document = await SitemapParser(client).fetch_sitemap("https://www.example.com")

        assert document.is_index is True
        assert document.urls == [
            "https://www.example.com/",
            "https://www.example.com/about",
            "https://www.example.com/contact",
            "https://www.example.com/p/1",
        ]
        assert document.most_recent_lastmod == datetime(2024, 4, 1, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_no_sitemap(self, client):
        parser = SitemapParser(client)

        assert await parser.discover("https://www.example.com") == []
        assert await parser.fetch_sitemap("https://www.example.com") is None

    @pytest.mark.asyncio
    async def test_empty_sitemap_is_found_but_yields_nothing(self, fake_site, client):
        fake_site.add("https://www.example.com/sitemap.xml", "<urlset></urlset>")
        parser = SitemapParser(client)

        document = await parser.fetch_sitemap("https://www.example.com")

        assert document is not None
        assert document.urls == []
        assert await parser.discover("https://www.example.com") == []
