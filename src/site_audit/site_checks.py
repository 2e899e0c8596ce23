"""
Site-level configuration and security probes.

Four independent one-shot checks run before crawling:
- robots.txt presence and basic directives
- Sitemap presence and freshness (also yields the sitemap's URL list)
- Favicon at the standard locations
- HTTP to HTTPS redirect

Every probe degrades to an issue on failure; none of them raise on
network errors.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

import httpx

from site_audit.client import NETWORK_ERRORS
from site_audit.config import AuditThresholds, default_thresholds
from site_audit.constants import FAVICON_PATHS, PROBE_TIMEOUT_SECONDS
from site_audit.models import ConfigIssue, ConfigIssueType, SecurityIssue, SecurityIssueType, Severity
from site_audit.sitemap_parser import SitemapParser
from site_audit.url_utils import site_origin

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SiteChecker:
    """Runs the site-level probes against one origin."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        thresholds: Optional[AuditThresholds] = None,
        timeout: float = PROBE_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize the checker.

        Args:
            client: Shared AsyncClient
            thresholds: Issue thresholds (sitemap age)
            timeout: Per-probe timeout in seconds
            clock: Returns the current UTC time; injectable for tests
        """
        self.client = client
        self.thresholds = thresholds or default_thresholds
        self.timeout = timeout
        self.clock = clock
        self.sitemap_parser = SitemapParser(client, timeout=timeout)

    async def check_robots_txt(self, site_url: str) -> List[ConfigIssue]:
        """Check robots.txt exists and names a user-agent and a sitemap.

        Args:
            site_url: Site origin

        Returns:
            Zero, one or two config issues
        """
        robots_url = f"{site_origin(site_url)}/robots.txt"

        try:
            response = await self.client.get(robots_url, timeout=self.timeout, follow_redirects=True)
        except NETWORK_ERRORS as e:
            logger.debug(f"Failed to fetch {robots_url}: {e!r}")
            return [ConfigIssue(
                type=ConfigIssueType.MISSING_ROBOTS,
                severity=Severity.WARNING,
                url=robots_url,
                details="Failed to fetch robots.txt",
            )]

        if not response.is_success:
            return [ConfigIssue(
                type=ConfigIssueType.MISSING_ROBOTS,
                severity=Severity.WARNING,
                url=robots_url,
                details=f"Status: {response.status_code}",
            )]

        content = response.text.lower()
        issues = []

        if "user-agent" not in content:
            issues.append(ConfigIssue(
                type=ConfigIssueType.INVALID_ROBOTS,
                severity=Severity.WARNING,
                url=robots_url,
                details="Missing User-agent directive",
            ))

        if "sitemap" not in content:
            issues.append(ConfigIssue(
                type=ConfigIssueType.INVALID_ROBOTS,
                severity=Severity.WARNING,
                url=robots_url,
                details="Missing Sitemap directive",
            ))

        return issues

    async def check_sitemap_health(self, site_url: str) -> Tuple[List[ConfigIssue], List[str]]:
        """Check a sitemap exists and was updated recently.

        Args:
            site_url: Site origin

        Returns:
            Tuple of (issues, page URLs listed in the sitemap)
        """
        document = await self.sitemap_parser.fetch_sitemap(site_url)

        if document is None:
            return [ConfigIssue(
                type=ConfigIssueType.MISSING_SITEMAP,
                severity=Severity.ERROR,
                details="No sitemap.xml found",
            )], []

        issues = []
        most_recent = document.most_recent_lastmod
        if most_recent is not None:
            age_days = (self.clock() - most_recent).total_seconds() / 86400
            if age_days > self.thresholds.sitemap_max_age_days:
                issues.append(ConfigIssue(
                    type=ConfigIssueType.OUTDATED_SITEMAP,
                    severity=Severity.WARNING,
                    url=document.location,
                    details=f"Last updated {math.floor(age_days)} days ago",
                ))

        return issues, list(document.urls)

    async def check_favicon(self, site_url: str) -> Optional[ConfigIssue]:
        """Look for a favicon at the standard locations.

        Returns:
            None when any location answers with 2xx, else a missing_favicon warning
        """
        base_url = site_origin(site_url)

        for path in FAVICON_PATHS:
            try:
                response = await self.client.head(
                    f"{base_url}{path}", timeout=self.timeout, follow_redirects=True
                )
            except NETWORK_ERRORS as e:
                logger.debug(f"Favicon probe failed for {base_url}{path}: {e!r}")
                continue
            if response.is_success:
                return None

        return ConfigIssue(
            type=ConfigIssueType.MISSING_FAVICON,
            severity=Severity.WARNING,
            url=f"{base_url}/favicon.ico",
            details="No favicon found at standard locations",
        )

    async def check_https_redirect(self, site_url: str) -> Optional[SecurityIssue]:
        """Check that the http:// variant of the site redirects to https://.

        Sites audited over plain http get an error; https sites whose http
        variant does not redirect get a warning. An unreachable http variant
        yields no issue.
        """
        http_url = site_url.replace("https://", "http://", 1)

        try:
            response = await self.client.head(http_url, timeout=self.timeout, follow_redirects=False)
        except NETWORK_ERRORS as e:
            logger.debug(f"HTTPS redirect probe failed for {http_url}: {e!r}")
            return None

        if 300 <= response.status_code < 400:
            location = response.headers.get("location", "")
            if location.startswith("https://"):
                return None

        if site_url.startswith("http://"):
            return SecurityIssue(
                type=SecurityIssueType.NO_HTTPS_REDIRECT,
                severity=Severity.ERROR,
                url=http_url,
                details="Site does not redirect HTTP to HTTPS",
            )

        return SecurityIssue(
            type=SecurityIssueType.NO_HTTPS_REDIRECT,
            severity=Severity.WARNING,
            url=http_url,
            details="HTTP does not redirect to HTTPS",
        )
