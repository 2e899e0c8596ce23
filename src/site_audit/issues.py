"""Issue generators: pure functions from a PageAnalysis to typed issues."""

import math
from typing import Iterable, List, Optional
from urllib.parse import urlparse

from site_audit.config import AuditThresholds, default_thresholds
from site_audit.constants import TRUSTED_SCRIPT_DOMAINS
from site_audit.models import (
    ConfigIssue,
    ConfigIssueType,
    HtmlIssue,
    HtmlIssueType,
    PageAnalysis,
    PerformanceIssue,
    PerformanceIssueType,
    SecurityIssue,
    SecurityIssueType,
    Severity,
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def generate_performance_issues(
    analysis: PageAnalysis, thresholds: Optional[AuditThresholds] = None
) -> List[PerformanceIssue]:
    """Performance warnings for one page.

    Args:
        analysis: Page fact sheet
        thresholds: Limits to compare against

    Returns:
        List of performance issues (all warnings)
    """
    thresholds = thresholds or default_thresholds
    issues = []

    def warn(issue_type: PerformanceIssueType, details: str) -> None:
        issues.append(PerformanceIssue(
            type=issue_type, severity=Severity.WARNING, url=analysis.url, details=details,
        ))

    if analysis.js_files > thresholds.max_js_files:
        warn(PerformanceIssueType.TOO_MANY_JS, f"{analysis.js_files} JavaScript files found")

    if analysis.css_files > thresholds.max_css_files:
        warn(PerformanceIssueType.TOO_MANY_CSS, f"{analysis.css_files} CSS files found")

    if analysis.render_blocking_scripts > 0:
        warn(
            PerformanceIssueType.RENDER_BLOCKING_SCRIPT,
            f"{analysis.render_blocking_scripts} render-blocking scripts in head",
        )

    if analysis.webfonts > thresholds.max_webfonts:
        warn(PerformanceIssueType.TOO_MANY_WEBFONTS, f"{analysis.webfonts} webfont references found")

    # Triggered by alt-less images, not by images lacking a loading attribute
    if not analysis.has_lazy_loading and analysis.images_without_alt > thresholds.lazy_loading_alt_images:
        warn(PerformanceIssueType.MISSING_LAZY_LOADING, "No lazy loading detected for images")

    if analysis.page_size > thresholds.max_page_size_bytes:
        warn(
            PerformanceIssueType.LARGE_PAGE_SIZE,
            f"Page size: {_round_half_up(analysis.page_size / 1024)}KB",
        )

    return issues


def find_heading_skip(hierarchy: List[str]) -> Optional[tuple]:
    """Return the first (previous, current) pair that skips a heading level."""
    for previous, current in zip(hierarchy, hierarchy[1:]):
        if int(current[1]) > int(previous[1]) + 1:
            return previous, current
    return None


def generate_html_issues(analysis: PageAnalysis) -> List[HtmlIssue]:
    """HTML structure and metadata issues for one page."""
    issues = []
    url = analysis.url

    if analysis.h1_count == 0:
        issues.append(HtmlIssue(
            type=HtmlIssueType.MISSING_H1, severity=Severity.ERROR, url=url,
            details="Page has no H1 heading",
        ))
    elif analysis.h1_count > 1:
        issues.append(HtmlIssue(
            type=HtmlIssueType.DUPLICATE_H1, severity=Severity.WARNING, url=url,
            details=f"Page has {analysis.h1_count} H1 headings: {', '.join(analysis.h1_texts)}",
        ))

    skip = find_heading_skip(analysis.heading_hierarchy)
    if skip:
        issues.append(HtmlIssue(
            type=HtmlIssueType.HEADING_HIERARCHY, severity=Severity.WARNING, url=url,
            details=f"Skipped heading level: {skip[0]} → {skip[1]}",
        ))

    if analysis.images_without_alt > 0:
        issues.append(HtmlIssue(
            type=HtmlIssueType.MISSING_ALT, severity=Severity.WARNING, url=url,
            details=f"{analysis.images_without_alt} images without alt attribute",
            elements=list(analysis.images_without_alt_list),
        ))

    if analysis.empty_links > 0:
        issues.append(HtmlIssue(
            type=HtmlIssueType.EMPTY_LINK, severity=Severity.WARNING, url=url,
            details=f"{analysis.empty_links} empty or invalid links",
            elements=list(analysis.empty_links_list),
        ))

    if not analysis.has_meta_description:
        issues.append(HtmlIssue(
            type=HtmlIssueType.MISSING_META_DESCRIPTION, severity=Severity.WARNING, url=url,
            details="Missing meta description",
        ))

    if not analysis.title:
        issues.append(HtmlIssue(
            type=HtmlIssueType.MISSING_TITLE, severity=Severity.ERROR, url=url,
            details="Page has no title",
        ))

    return issues


def generate_config_issues(analysis: PageAnalysis, is_homepage: bool) -> List[ConfigIssue]:
    """Social meta tag checks; only the homepage is inspected."""
    if not is_homepage:
        return []

    issues = []
    if not analysis.has_og_tags:
        issues.append(ConfigIssue(
            type=ConfigIssueType.MISSING_OG_TAGS, severity=Severity.WARNING, url=analysis.url,
            details="Missing Open Graph meta tags",
        ))

    if not analysis.has_twitter_cards:
        issues.append(ConfigIssue(
            type=ConfigIssueType.MISSING_TWITTER_CARDS, severity=Severity.WARNING, url=analysis.url,
            details="Missing Twitter Card meta tags",
        ))

    return issues


def is_trusted_script_host(host: str, trusted_domains: Iterable[str] = TRUSTED_SCRIPT_DOMAINS) -> bool:
    return any(host == domain or host.endswith(f".{domain}") for domain in trusted_domains)


def generate_security_issues(
    analysis: PageAnalysis, trusted_domains: Iterable[str] = TRUSTED_SCRIPT_DOMAINS
) -> List[SecurityIssue]:
    """Mixed content errors and untrusted third-party script warnings."""
    trusted_domains = tuple(trusted_domains)
    issues = []

    for resource in analysis.mixed_content:
        issues.append(SecurityIssue(
            type=SecurityIssueType.MIXED_CONTENT, severity=Severity.ERROR, url=analysis.url,
            source=resource, details=f"HTTP resource on HTTPS page: {resource}",
        ))

    for script_url in analysis.external_scripts:
        try:
            host = urlparse(script_url).hostname
        except ValueError:
            continue
        if not host or is_trusted_script_host(host, trusted_domains):
            continue
        issues.append(SecurityIssue(
            type=SecurityIssueType.UNTRUSTED_SCRIPTS, severity=Severity.WARNING, url=analysis.url,
            source=script_url, details=f"External script from: {host}",
        ))

    return issues
