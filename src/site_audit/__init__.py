"""Website technical auditor: crawl, liveness checks, issues and scores."""

__version__ = "0.1.0"

from site_audit.site_auditor import SiteAuditor, run_audit
from site_audit.liveness import LivenessChecker
from site_audit.sitemap_parser import SitemapParser
from site_audit.site_checks import SiteChecker
from site_audit.page_analyzer import PageAnalyzer
from site_audit.trust_checks import TrustChecker, calculate_trust_score
from site_audit.scoring import calculate_scores
from site_audit.deduplication import deduplicate_issues
from site_audit.models import (
    AuditReport,
    AuditScores,
    CrawlResult,
    PageAnalysis,
    Phase,
    ProgressEvent,
    Severity,
)
from site_audit.config import AuditConfig, AuditThresholds, settings
from site_audit.exceptions import AuditCancelledError, InvalidSiteUrlError, SiteAuditError

__all__ = [
    # Core
    "SiteAuditor",
    "run_audit",
    "LivenessChecker",
    "SitemapParser",
    "SiteChecker",
    "PageAnalyzer",
    "TrustChecker",
    "calculate_trust_score",
    "calculate_scores",
    "deduplicate_issues",
    # Models
    "AuditReport",
    "AuditScores",
    "CrawlResult",
    "PageAnalysis",
    "Phase",
    "ProgressEvent",
    "Severity",
    # Config
    "AuditConfig",
    "AuditThresholds",
    "settings",
    # Errors
    "SiteAuditError",
    "InvalidSiteUrlError",
    "AuditCancelledError",
]
