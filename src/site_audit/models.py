"""Data models for site audits.

Everything here is transient: objects are created during one audit run and
discarded once the final report has been emitted.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Optional
from urllib.parse import urlparse


class Severity(str, Enum):
    """Issue severity; determines the scoring penalty."""
    WARNING = "warning"
    ERROR = "error"


class ResultType(str, Enum):
    """What kind of resource a liveness result refers to."""
    PAGE = "page"
    IMAGE = "image"
    LINK = "link"


class Phase(str, Enum):
    """Audit run phases, in execution order."""
    CONFIG = "config"
    SITEMAP = "sitemap"
    CRAWLING = "crawling"
    CHECKING = "checking"
    COMPLETE = "complete"
    ERROR = "error"


class PerformanceIssueType(str, Enum):
    TOO_MANY_JS = "too_many_js"
    TOO_MANY_CSS = "too_many_css"
    UNOPTIMIZED_IMAGE = "unoptimized_image"
    MISSING_LAZY_LOADING = "missing_lazy_loading"
    RENDER_BLOCKING_SCRIPT = "render_blocking_script"
    TOO_MANY_WEBFONTS = "too_many_webfonts"
    LARGE_PAGE_SIZE = "large_page_size"


class HtmlIssueType(str, Enum):
    INVALID_HTML = "invalid_html"
    MISSING_H1 = "missing_h1"
    DUPLICATE_H1 = "duplicate_h1"
    HEADING_HIERARCHY = "heading_hierarchy"
    EMPTY_LINK = "empty_link"
    MISSING_ALT = "missing_alt"
    DEPRECATED_ELEMENT = "deprecated_element"
    MISSING_TITLE = "missing_title"
    MISSING_META_DESCRIPTION = "missing_meta_description"


class ConfigIssueType(str, Enum):
    MISSING_ROBOTS = "missing_robots"
    INVALID_ROBOTS = "invalid_robots"
    MISSING_SITEMAP = "missing_sitemap"
    SITEMAP_404_URLS = "sitemap_404_urls"
    SITEMAP_REDIRECTS = "sitemap_redirects"
    OUTDATED_SITEMAP = "outdated_sitemap"
    MISSING_FAVICON = "missing_favicon"
    MISSING_OG_TAGS = "missing_og_tags"
    MISSING_TWITTER_CARDS = "missing_twitter_cards"


class SecurityIssueType(str, Enum):
    MIXED_CONTENT = "mixed_content"
    NO_HTTPS_REDIRECT = "no_https_redirect"
    UNTRUSTED_SCRIPTS = "untrusted_scripts"
    MISSING_CSP = "missing_csp"
    MISSING_X_FRAME_OPTIONS = "missing_x_frame_options"


def _is_absolute_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


@dataclass(frozen=True)
class CrawlResult:
    """One observed liveness outcome."""
    url: str
    status: int
    type: ResultType
    source: Optional[str] = None  # First page that referenced the URL
    is_external: bool = False

    def to_dict(self) -> dict:
        data = {
            "url": self.url,
            "status": self.status,
            "type": ResultType(self.type).value,
            "isExternal": self.is_external,
        }
        if self.source is not None:
            data["source"] = self.source
        return data


@dataclass
class PageAnalysis:
    """Fact sheet extracted from a single fetched page."""

    url: str
    title: Optional[str] = None
    h1_count: int = 0
    h1_texts: list[str] = field(default_factory=list)
    heading_hierarchy: list[str] = field(default_factory=list)  # e.g. ["h1", "h2", "h4"]

    # Counts are exact; the *_list samples are capped
    images_without_alt: int = 0
    images_without_alt_list: list[str] = field(default_factory=list)
    empty_links: int = 0
    empty_links_list: list[str] = field(default_factory=list)

    js_files: int = 0
    css_files: int = 0
    render_blocking_scripts: int = 0
    webfonts: int = 0
    has_lazy_loading: bool = False

    mixed_content: list[str] = field(default_factory=list)  # Same-domain http:// resources
    external_scripts: list[str] = field(default_factory=list)

    has_favicon: bool = False
    has_og_tags: bool = False
    has_twitter_cards: bool = False
    has_meta_description: bool = False
    page_size: int = 0  # Response body size in bytes

    # Outbound URLs found in the same parse
    links: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)


@dataclass
class Issue:
    """Base class for typed audit issues.

    Subclasses bind ``TYPE_ENUM`` to the closed set of issue types allowed
    for their category. Plain strings are accepted for ``type`` and
    ``severity`` and coerced; values outside the enums raise ValueError.
    """
    type: Enum
    severity: Severity
    url: Optional[str] = None
    source: Optional[str] = None
    details: Optional[str] = None
    elements: list[str] = field(default_factory=list)

    TYPE_ENUM: ClassVar[Optional[type]] = None
    CATEGORY: ClassVar[str] = ""

    def __post_init__(self):
        if self.TYPE_ENUM is None:
            raise TypeError("Issue is abstract; use a category subclass")
        self.type = self.TYPE_ENUM(self.type)
        self.severity = Severity(self.severity)
        if self.url is not None and not _is_absolute_url(self.url):
            raise ValueError(f"Issue url must be an absolute http(s) URL: {self.url!r}")

    def with_details(self, details: Optional[str]) -> "Issue":
        """Return a copy carrying different details."""
        return replace(self, details=details, elements=list(self.elements))

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "type": self.type.value,
            "severity": self.severity.value,
        }
        if self.url is not None:
            data["url"] = self.url
        if self.source is not None:
            data["source"] = self.source
        if self.details is not None:
            data["details"] = self.details
        if self.elements:
            data["elements"] = list(self.elements)
        return data


@dataclass
class PerformanceIssue(Issue):
    TYPE_ENUM: ClassVar[type] = PerformanceIssueType
    CATEGORY: ClassVar[str] = "performance"


@dataclass
class HtmlIssue(Issue):
    TYPE_ENUM: ClassVar[type] = HtmlIssueType
    CATEGORY: ClassVar[str] = "html"


@dataclass
class ConfigIssue(Issue):
    TYPE_ENUM: ClassVar[type] = ConfigIssueType
    CATEGORY: ClassVar[str] = "config"


@dataclass
class SecurityIssue(Issue):
    TYPE_ENUM: ClassVar[type] = SecurityIssueType
    CATEGORY: ClassVar[str] = "security"


@dataclass
class AuditErrors:
    """Broken pages, links and images found during an audit."""
    pages404: list[CrawlResult] = field(default_factory=list)
    internal_links404: list[CrawlResult] = field(default_factory=list)
    broken_images: list[CrawlResult] = field(default_factory=list)
    external_links404: list[CrawlResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return (
            len(self.pages404)
            + len(self.internal_links404)
            + len(self.broken_images)
            + len(self.external_links404)
        )

    def to_dict(self) -> dict:
        return {
            "pages404": [r.to_dict() for r in self.pages404],
            "internalLinks404": [r.to_dict() for r in self.internal_links404],
            "brokenImages": [r.to_dict() for r in self.broken_images],
            "externalLinks404": [r.to_dict() for r in self.external_links404],
        }


@dataclass(frozen=True)
class AuditScores:
    """Category scores (0-100) plus the overall mean."""
    links: int = 100
    performance: int = 100
    html: int = 100
    config: int = 100
    security: int = 100
    overall: int = 100

    def to_dict(self) -> dict:
        return {
            "links": self.links,
            "performance": self.performance,
            "html": self.html,
            "config": self.config,
            "security": self.security,
            "overall": self.overall,
        }


@dataclass
class AuditReport:
    """Aggregate result of one audit run."""
    site_url: str
    scanned_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    total_pages: int = 0
    total_links: int = 0
    total_images: int = 0
    errors: AuditErrors = field(default_factory=AuditErrors)
    performance: list[PerformanceIssue] = field(default_factory=list)
    html: list[HtmlIssue] = field(default_factory=list)
    config: list[ConfigIssue] = field(default_factory=list)
    security: list[SecurityIssue] = field(default_factory=list)
    scores: Optional[AuditScores] = None  # Filled in after assembly

    def issues_by_category(self) -> dict[str, list[Issue]]:
        return {
            "performance": self.performance,
            "html": self.html,
            "config": self.config,
            "security": self.security,
        }

    def to_dict(self) -> dict:
        data = {
            "siteUrl": self.site_url,
            "scannedAt": self.scanned_at.isoformat(),
            "totalPages": self.total_pages,
            "totalLinks": self.total_links,
            "totalImages": self.total_images,
            "errors": self.errors.to_dict(),
            "performance": [i.to_dict() for i in self.performance],
            "html": [i.to_dict() for i in self.html],
            "config": [i.to_dict() for i in self.config],
            "security": [i.to_dict() for i in self.security],
        }
        if self.scores is not None:
            data["scores"] = self.scores.to_dict()
        return data


@dataclass(frozen=True)
class ProgressEvent:
    """One progress update emitted during an audit run.

    ``complete`` carries the report; ``error`` carries a message. Both are
    terminal.
    """
    phase: Phase
    current: Optional[int] = None
    total: Optional[int] = None
    current_url: Optional[str] = None
    message: Optional[str] = None
    report: Optional[AuditReport] = None

    @property
    def is_terminal(self) -> bool:
        return Phase(self.phase) in (Phase.COMPLETE, Phase.ERROR)

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"phase": Phase(self.phase).value}
        if self.current is not None:
            data["current"] = self.current
        if self.total is not None:
            data["total"] = self.total
        if self.current_url is not None:
            data["currentUrl"] = self.current_url
        if self.message is not None:
            data["message"] = self.message
        if self.report is not None:
            data["report"] = self.report.to_dict()
        return data
