"""Category and overall scores for an assembled audit report."""

import math
from typing import Iterable

from site_audit.constants import CATEGORY_PENALTIES, LINK_ERROR_PENALTY, MAX_SCORE
from site_audit.models import AuditReport, AuditScores, Issue, Severity


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def category_score(issues: Iterable[Issue], error_penalty: int, warning_penalty: int) -> int:
    """Score one issue category, floored at 0."""
    errors = 0
    warnings = 0
    for issue in issues:
        if issue.severity == Severity.ERROR:
            errors += 1
        elif issue.severity == Severity.WARNING:
            warnings += 1
    return max(0, MAX_SCORE - errors * error_penalty - warnings * warning_penalty)


def calculate_scores(report: AuditReport) -> AuditScores:
    """Compute the five category scores and their rounded mean.

    Args:
        report: Report with errors and deduplicated issues filled in

    Returns:
        AuditScores
    """
    links = max(0, MAX_SCORE - report.errors.total * LINK_ERROR_PENALTY)

    category_scores = {
        category: category_score(issues, *CATEGORY_PENALTIES[category])
        for category, issues in report.issues_by_category().items()
    }

    all_scores = [links, *category_scores.values()]
    overall = _round_half_up(sum(all_scores) / len(all_scores))

    return AuditScores(
        links=links,
        performance=category_scores["performance"],
        html=category_scores["html"],
        config=category_scores["config"],
        security=category_scores["security"],
        overall=overall,
    )
