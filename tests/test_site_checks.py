"""Tests for site-level configuration and security probes."""

from datetime import datetime, timezone

import httpx
import pytest

from site_audit.models import ConfigIssueType, SecurityIssueType, Severity
from site_audit.site_checks import SiteChecker

SITE = "https://www.example.com"
NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def fixed_clock():
    return NOW


@pytest.fixture
def checker(client):
    return SiteChecker(client, clock=fixed_clock)


class TestRobotsTxt:
    """Test cases for check_robots_txt."""

    @pytest.mark.asyncio
    async def test_missing(self, checker):
        issues = await checker.check_robots_txt(SITE)

        assert len(issues) == 1
        assert issues[0].type == ConfigIssueType.MISSING_ROBOTS
        assert issues[0].severity == Severity.WARNING
        assert issues[0].details == "Status: 404"
        assert issues[0].url == "https://www.example.com/robots.txt"

    @pytest.mark.asyncio
    async def test_valid(self, fake_site, checker):
        fake_site.add(f"{SITE}/robots.txt", "User-agent: *\nDisallow:\nSitemap: https://www.example.com/sitemap.xml\n",
                      content_type="text/plain")

        assert await checker.check_robots_txt(SITE) == []

    @pytest.mark.asyncio
    async def test_both_directives_missing(self, fake_site, checker):
        """Missing user-agent and sitemap directives are reported independently."""
        fake_site.add(f"{SITE}/robots.txt", "Disallow: /admin\n", content_type="text/plain")

        issues = await checker.check_robots_txt(SITE)

        assert [i.type for i in issues] == [ConfigIssueType.INVALID_ROBOTS, ConfigIssueType.INVALID_ROBOTS]
        assert [i.details for i in issues] == ["Missing User-agent directive", "Missing Sitemap directive"]

    @pytest.mark.asyncio
    async def test_network_failure(self, fake_site, checker):
        fake_site.fail(f"{SITE}/robots.txt")

        issues = await checker.check_robots_txt(SITE)

        assert issues[0].type == ConfigIssueType.MISSING_ROBOTS
        assert issues[0].details == "Failed to fetch robots.txt"


class TestSitemapHealth:
    """Test cases for check_sitemap_health."""

    @pytest.mark.asyncio
    async def test_missing_sitemap(self, checker):
        issues, urls = await checker.check_sitemap_health(SITE)

        assert urls == []
        assert len(issues) == 1
        assert issues[0].type == ConfigIssueType.MISSING_SITEMAP
        assert issues[0].severity == Severity.ERROR
        assert issues[0].url is None

    @pytest.mark.asyncio
    async def test_fresh_sitemap(self, fake_site, checker):
        fake_site.add(f"{SITE}/sitemap.xml", """
            <urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
              <url><loc>https://www.example.com/</loc><lastmod>2024-04-28</lastmod></url>
              <url><loc>https://www.example.com/a</loc><lastmod>2024-01-01</lastmod></url>
            </urlset>""")

        issues, urls = await checker.check_sitemap_health(SITE)

        assert issues == []
        assert urls == ["https://www.example.com/", "https://www.example.com/a"]

    @pytest.mark.asyncio
    async def test_outdated_sitemap(self, fake_site, checker):
        fake_site.add(f"{SITE}/sitemap.xml", """
            <urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
              <url><loc>https://www.example.com/</loc><lastmod>2024-04-01</lastmod></url>
            </urlset>""")

        issues, urls = await checker.check_sitemap_health(SITE)

        assert len(issues) == 1
        assert issues[0].type == ConfigIssueType.OUTDATED_SITEMAP
        assert issues[0].details == "Last updated 30 days ago"
        assert issues[0].url == "https://www.example.com/sitemap.xml"
        assert urls == ["https://www.example.com/"]


class TestFavicon:
    """Test cases for check_favicon."""

    @pytest.mark.asyncio
    async def test_found_at_fallback_location(self, fake_site, checker):
        fake_site.add(f"{SITE}/favicon.png", content_type="image/png")

        assert await checker.check_favicon(SITE) is None
        assert fake_site.requested("HEAD") == [f"{SITE}/favicon.ico", f"{SITE}/favicon.png"]

    @pytest.mark.asyncio
    async def test_missing(self, checker):
        issue = await checker.check_favicon(SITE)

        assert issue.type == ConfigIssueType.MISSING_FAVICON
        assert issue.severity == Severity.WARNING
        assert issue.url == f"{SITE}/favicon.ico"


class TestHttpsRedirect:
    """Test cases for check_https_redirect."""

    @pytest.mark.asyncio
    async def test_redirects_to_https(self, fake_site, checker):
        fake_site.redirect("http://www.example.com/", "https://www.example.com/")

        assert await checker.check_https_redirect(SITE) is None

    @pytest.mark.asyncio
    async def test_https_site_without_redirect_is_warning(self, fake_site, checker):
        fake_site.add("http://www.example.com/", "<html></html>")

        issue = await checker.check_https_redirect(SITE)

        assert issue.type == SecurityIssueType.NO_HTTPS_REDIRECT
        assert issue.severity == Severity.WARNING
        assert issue.url == "http://www.example.com"

    @pytest.mark.asyncio
    async def test_http_site_without_redirect_is_error(self, fake_site, checker):
        fake_site.add("http://www.example.com/", "<html></html>")

        issue = await checker.check_https_redirect("http://www.example.com")

        assert issue.severity == Severity.ERROR
        assert issue.details == "Site does not redirect HTTP to HTTPS"

    @pytest.mark.asyncio
    async def test_redirect_to_http_is_not_enough(self, fake_site, checker):
        fake_site.redirect("http://www.example.com/", "http://www.example.com/home")

        issue = await checker.check_https_redirect(SITE)

        assert issue.type == SecurityIssueType.NO_HTTPS_REDIRECT

    @pytest.mark.asyncio
    async def test_unreachable_http_variant(self, fake_site, checker):
        fake_site.fail("http://www.example.com/", exc_type=httpx.ConnectError)

        assert await checker.check_https_redirect(SITE) is None
