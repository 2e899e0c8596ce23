"""Collapse issues that recur across most pages of a site."""

import logging
from typing import Dict, List, Optional, TypeVar

from site_audit.config import AuditThresholds, default_thresholds
from site_audit.models import Issue
from site_audit.url_utils import normalize_page_url

logger = logging.getLogger(__name__)

IssueT = TypeVar("IssueT", bound=Issue)


def issue_signature(issue: Issue) -> str:
    """Grouping key: issue type plus details text."""
    return f"{issue.type.value}:{issue.details or ''}"


def deduplicate_issues(
    issues: List[IssueT],
    total_pages: int,
    thresholds: Optional[AuditThresholds] = None,
) -> List[IssueT]:
    """Group issues by signature and collapse template-wide ones.

    Within a signature, repeat occurrences for the same normalized URL are
    dropped. A signature seen on more than ``dedup_page_ratio`` of the
    scanned pages (with more than ``dedup_min_pages`` pages scanned) is
    reduced to its first occurrence, annotated with the page count.

    Args:
        issues: Issues from one category, in discovery order
        total_pages: Number of pages scanned
        thresholds: Dedup ratio and minimum page count

    Returns:
        Deduplicated issues, grouped by first appearance of each signature
    """
    thresholds = thresholds or default_thresholds
    groups: Dict[str, List[IssueT]] = {}
    seen_urls: Dict[str, set] = {}

    for issue in issues:
        signature = issue_signature(issue)
        normalized_url = normalize_page_url(issue.url) if issue.url else ""

        group = groups.setdefault(signature, [])
        urls = seen_urls.setdefault(signature, set())
        if normalized_url in urls:
            continue
        urls.add(normalized_url)
        group.append(issue)

    collapse_above = total_pages * thresholds.dedup_page_ratio
    result: List[IssueT] = []

    for signature, group in groups.items():
        if len(group) > collapse_above and total_pages > thresholds.dedup_min_pages:
            logger.debug(f"Collapsing {signature!r}: found on {len(group)} of {total_pages} pages")
            first = group[0]
            details = f"{first.details or ''} [Found on {len(group)} pages]".strip()
            result.append(first.with_details(details))
        else:
            result.extend(group)

    return result
