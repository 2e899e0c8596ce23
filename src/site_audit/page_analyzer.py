"""Single-fetch page analysis: one parse yields the fact sheet and outbound URLs."""

import logging
import re
from typing import List, Optional
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from site_audit.client import NETWORK_ERRORS
from site_audit.config import AuditThresholds, default_thresholds
from site_audit.constants import (
    EMPTY_LINK_HREFS,
    IMAGE_SAMPLE_MAX_CHARS,
    LINK_TEXT_SAMPLE_MAX_CHARS,
    MIXED_CONTENT_SRC_TAGS,
    PAGE_TIMEOUT_SECONDS,
    WEBFONT_HOSTS,
)
from site_audit.models import PageAnalysis
from site_audit.url_utils import origin_key, resolve_url, site_origin, strip_www

logger = logging.getLogger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
FONT_FACE_PATTERN = re.compile(r"@font-face", re.IGNORECASE)


def _rel_values(tag) -> List[str]:
    rel = tag.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return [value.lower() for value in rel]


def _append_unique(urls: List[str], url: Optional[str]) -> None:
    if url and url not in urls:
        urls.append(url)


class PageAnalyzer:
    """Fetches a page once and derives its technical fact sheet."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = PAGE_TIMEOUT_SECONDS,
        thresholds: Optional[AuditThresholds] = None,
    ):
        self.client = client
        self.timeout = timeout
        self.thresholds = thresholds or default_thresholds

    async def analyze(self, page_url: str) -> Optional[PageAnalysis]:
        """Fetch and analyze a page.

        Args:
            page_url: Absolute page URL

        Returns:
            PageAnalysis, or None on a non-2xx response or network failure
        """
        try:
            response = await self.client.get(page_url, timeout=self.timeout, follow_redirects=True)
        except NETWORK_ERRORS as e:
            logger.warning(f"Error analyzing {page_url}: {e!r}")
            return None

        if not response.is_success:
            logger.debug(f"Skipping analysis of {page_url}: status {response.status_code}")
            return None

        return self.extract(page_url, response.text, page_size=len(response.content))

    def extract(self, page_url: str, html: str, page_size: Optional[int] = None) -> PageAnalysis:
        """Derive the fact sheet and outbound URLs from page markup.

        Args:
            page_url: URL the markup was fetched from
            html: Page markup
            page_size: Body size in bytes; defaults to the UTF-8 size of ``html``

        Returns:
            PageAnalysis for the page
        """
        soup = BeautifulSoup(html, "html.parser")
        base_origin = site_origin(page_url)
        sample_limit = self.thresholds.element_sample_limit

        analysis = PageAnalysis(url=page_url)
        analysis.page_size = page_size if page_size is not None else len(html.encode("utf-8"))

        # Outbound links and images
        for link in soup.find_all("a", href=True):
            _append_unique(analysis.links, resolve_url(link["href"], base_origin, page_url))

        for img in soup.find_all("img", src=True):
            _append_unique(analysis.images, resolve_url(img["src"], base_origin, page_url))

        for tag in soup.find_all(["img", "source"], srcset=True):
            for candidate in tag["srcset"].split(","):
                parts = candidate.strip().split()
                if parts:
                    _append_unique(analysis.images, resolve_url(parts[0], base_origin, page_url))

        # Title and headings
        title = soup.find("title")
        analysis.title = (title.get_text(strip=True) if title else "") or None

        h1_tags = soup.find_all("h1")
        analysis.h1_count = len(h1_tags)
        analysis.h1_texts = [h1.get_text(strip=True) for h1 in h1_tags]
        analysis.heading_hierarchy = [tag.name.lower() for tag in soup.find_all(HEADING_TAGS)]

        # Images without alt
        for img in soup.find_all("img"):
            if img.get("alt"):
                continue
            analysis.images_without_alt += 1
            src = img.get("src") or img.get("data-src") or ""
            if src and len(analysis.images_without_alt_list) < sample_limit:
                analysis.images_without_alt_list.append(src[:IMAGE_SAMPLE_MAX_CHARS])

        # Empty links
        for link in soup.find_all("a"):
            href = link.get("href")
            if href and href not in EMPTY_LINK_HREFS:
                continue
            analysis.empty_links += 1
            if len(analysis.empty_links_list) < sample_limit:
                text = link.get_text().strip()[:LINK_TEXT_SAMPLE_MAX_CHARS] or "[no text]"
                analysis.empty_links_list.append(f'"{text}" → {href or "[no href]"}')

        # Scripts and styles
        scripts = soup.find_all("script", src=True)
        stylesheets = [link for link in soup.find_all("link") if "stylesheet" in _rel_values(link)]
        analysis.js_files = len(scripts)
        analysis.css_files = len(stylesheets)

        if soup.head is not None:
            analysis.render_blocking_scripts = sum(
                1 for script in soup.head.find_all("script", src=True)
                if not script.has_attr("async") and not script.has_attr("defer")
            )

        font_links = [
            link for link in soup.find_all("link", href=True)
            if any(host in link["href"] for host in WEBFONT_HOSTS)
        ]
        font_faces = sum(
            len(FONT_FACE_PATTERN.findall(style.get_text()))
            for style in soup.find_all("style")
        )
        analysis.webfonts = len(font_links) + font_faces

        analysis.has_lazy_loading = any(
            img.get("loading") == "lazy" or img.has_attr("data-src") or img.has_attr("data-lazy")
            for img in soup.find_all("img")
        )

        analysis.mixed_content = self._find_mixed_content(soup, page_url, stylesheets)
        analysis.external_scripts = self._find_external_scripts(scripts, page_url, base_origin)

        # Head metadata
        analysis.has_favicon = any(
            any("icon" in rel for rel in _rel_values(link)) for link in soup.find_all("link")
        )

        og_properties = {
            meta["property"] for meta in soup.find_all("meta", property=True)
            if meta["property"].startswith("og:")
        }
        analysis.has_og_tags = len(og_properties) >= self.thresholds.min_og_tags

        twitter_names = {
            meta["name"] for meta in soup.find_all("meta", attrs={"name": lambda x: x and x.startswith("twitter:")})
        }
        analysis.has_twitter_cards = len(twitter_names) >= self.thresholds.min_twitter_tags

        description_tag = soup.find("meta", attrs={"name": "description"})
        analysis.has_meta_description = bool(description_tag and description_tag.get("content"))

        return analysis

    @staticmethod
    def _find_mixed_content(soup: BeautifulSoup, page_url: str, stylesheets: list) -> List[str]:
        """Same-domain http:// sub-resources loaded by an https:// page."""
        if not page_url.startswith("https://"):
            return []

        page_host = strip_www(urlparse(page_url).hostname or "")

        def is_same_domain(url: str) -> bool:
            try:
                return strip_www(urlparse(url).hostname or "") == page_host
            except ValueError:
                return False

        mixed = []
        for tag in soup.find_all(list(MIXED_CONTENT_SRC_TAGS) + ["object"]):
            resource = tag.get("data") if tag.name == "object" else tag.get("src")
            if resource and resource.startswith("http://") and is_same_domain(resource):
                mixed.append(resource)

        for link in stylesheets:
            href = link.get("href")
            if href and href.startswith("http://") and is_same_domain(href):
                mixed.append(href)

        return mixed

    @staticmethod
    def _find_external_scripts(scripts: list, page_url: str, base_origin: str) -> List[str]:
        """Scripts whose resolved origin differs from the page origin."""
        page_origin = origin_key(base_origin)
        external = []
        for script in scripts:
            src = script["src"].strip()
            if not src:
                continue
            try:
                script_url = urljoin(page_url, src)
                parsed = urlparse(script_url)
                if parsed.scheme not in ("http", "https") or not parsed.netloc:
                    continue
                if origin_key(script_url) != page_origin:
                    external.append(script_url)
            except ValueError:
                continue
        return external
