"""Sitemap discovery and parsing, including sitemap index files."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
from xml.etree import ElementTree as ET

import httpx

from site_audit.client import NETWORK_ERRORS
from site_audit.constants import MAX_SITEMAP_DEPTH, PROBE_TIMEOUT_SECONDS, SITEMAP_PATHS
from site_audit.url_utils import site_origin

logger = logging.getLogger(__name__)


@dataclass
class ParsedSitemap:
    """Contents of a single sitemap XML document."""
    is_index: bool
    urls: List[str] = field(default_factory=list)
    lastmods: List[datetime] = field(default_factory=list)
    child_sitemaps: List[str] = field(default_factory=list)


@dataclass
class SitemapDocument:
    """A discovered sitemap with nested sitemaps already expanded."""
    location: str
    is_index: bool = False
    urls: List[str] = field(default_factory=list)
    lastmods: List[datetime] = field(default_factory=list)

    @property
    def most_recent_lastmod(self) -> Optional[datetime]:
        return max(self.lastmods) if self.lastmods else None


def _local_name(tag: str) -> str:
    return tag.split('}')[-1] if '}' in tag else tag


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    for child in element:
        if _local_name(child.tag) == name and child.text and child.text.strip():
            return child.text.strip()
    return None


def _clean_xml_content(content: str) -> str:
    """Strip DOCTYPE declarations and any HTML wrapper around the XML."""
    content = re.sub(r'<!DOCTYPE[^>]*>', '', content).strip()

    if '<html' in content.lower():
        match = re.search(r'(<\?xml.*?</(?:urlset|sitemapindex)>)', content, re.DOTALL)
        if match:
            return match.group(1)

        match = re.search(r'(<(?:urlset|sitemapindex).*?</(?:urlset|sitemapindex)>)', content, re.DOTALL)
        if match:
            return match.group(1)

    return content


def parse_lastmod(value: str) -> Optional[datetime]:
    """Parse a W3C datetime lastmod value; naive values are taken as UTC."""
    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_sitemap_xml(content: str) -> Optional[ParsedSitemap]:
    """Parse sitemap XML content.

    Args:
        content: Raw XML text

    Returns:
        ParsedSitemap, or None if the content is malformed or not a sitemap
    """
    try:
        root = ET.fromstring(_clean_xml_content(content))
    except ET.ParseError as e:
        logger.debug(f"Failed to parse sitemap XML: {e}")
        return None

    root_tag = _local_name(root.tag)

    if root_tag == 'sitemapindex':
        parsed = ParsedSitemap(is_index=True)
        for sitemap in root.iter():
            if _local_name(sitemap.tag) != 'sitemap':
                continue
            loc = _child_text(sitemap, 'loc')
            if loc:
                parsed.child_sitemaps.append(loc)
        return parsed

    if root_tag == 'urlset':
        parsed = ParsedSitemap(is_index=False)
        for url_elem in root.iter():
            if _local_name(url_elem.tag) != 'url':
                continue
            loc = _child_text(url_elem, 'loc')
            if loc:
                parsed.urls.append(loc)
            lastmod = _child_text(url_elem, 'lastmod')
            if lastmod:
                lastmod_date = parse_lastmod(lastmod)
                if lastmod_date is not None:
                    parsed.lastmods.append(lastmod_date)
        return parsed

    logger.debug(f"Unknown sitemap root element: {root_tag}")
    return None


class SitemapParser:
    """
    Discover and parse XML sitemaps to seed a crawl.

    Supports:
    - Standard sitemap.xml files
    - Sitemap index files (nested sitemaps are fetched and merged)
    - Fallback through the usual sitemap locations
    """

    def __init__(self, client: httpx.AsyncClient, timeout: float = PROBE_TIMEOUT_SECONDS):
        """
        Initialize the sitemap parser.

        Args:
            client: Shared AsyncClient
            timeout: Per-request timeout in seconds
        """
        self.client = client
        self.timeout = timeout

    async def discover(self, site_url: str) -> List[str]:
        """
        Find the site's sitemap and return its page URLs.

        Candidate locations are tried in order; the first one yielding any
        URLs wins.

        Args:
            site_url: Site origin

        Returns:
            List of page URLs, empty if no usable sitemap exists
        """
        base_url = site_origin(site_url)

        for path in SITEMAP_PATHS:
            document = await self.load(f"{base_url}{path}")
            if document and document.urls:
                logger.info(f"Found {len(document.urls)} URLs in {document.location}")
                return document.urls

        logger.info(f"No sitemap found for {base_url}")
        return []

    async def fetch_sitemap(self, site_url: str) -> Optional[SitemapDocument]:
        """
        Return the first sitemap that exists and parses, even if empty.

        Args:
            site_url: Site origin

        Returns:
            SitemapDocument, or None if no candidate location has a sitemap
        """
        base_url = site_origin(site_url)

        for path in SITEMAP_PATHS:
            document = await self.load(f"{base_url}{path}")
            if document is not None:
                return document

        return None

    async def load(self, sitemap_url: str) -> Optional[SitemapDocument]:
        """Fetch one sitemap location and expand any nested sitemaps.

        Returns None when the location is missing, unreachable or malformed.
        """
        parsed = await self._fetch_and_parse(sitemap_url)
        if parsed is None:
            return None

        document = SitemapDocument(location=sitemap_url, is_index=parsed.is_index)
        seen: set = set()
        await self._merge(document, parsed, seen, depth=0)
        return document

    async def _fetch_and_parse(self, sitemap_url: str) -> Optional[ParsedSitemap]:
        try:
            response = await self.client.get(
                sitemap_url,
                headers={'Accept': 'application/xml, text/xml, */*'},
                timeout=self.timeout,
                follow_redirects=True,
            )
        except NETWORK_ERRORS as e:
            logger.debug(f"Failed to fetch sitemap {sitemap_url}: {e!r}")
            return None

        if not response.is_success:
            logger.debug(f"Sitemap {sitemap_url} returned {response.status_code}")
            return None

        return parse_sitemap_xml(response.text)

    async def _merge(
        self,
        document: SitemapDocument,
        parsed: ParsedSitemap,
        seen: set,
        depth: int,
    ) -> None:
        """Recursively fold a parsed sitemap into the document."""
        for url in parsed.urls:
            if url not in seen:
                seen.add(url)
                document.urls.append(url)
        document.lastmods.extend(parsed.lastmods)

        if depth >= MAX_SITEMAP_DEPTH:
            return

        for child_url in parsed.child_sitemaps:
            logger.debug(f"Fetching nested sitemap: {child_url}")
            child = await self._fetch_and_parse(child_url)
            if child is None:
                continue  # Nested sitemaps are best-effort
            await self._merge(document, child, seen, depth + 1)
