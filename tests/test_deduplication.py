"""Tests for template-wide issue deduplication."""

from site_audit.config import AuditThresholds
from site_audit.deduplication import deduplicate_issues, issue_signature
from site_audit.models import HtmlIssue, HtmlIssueType, Severity


def missing_description(page: str) -> HtmlIssue:
    return HtmlIssue(
        type=HtmlIssueType.MISSING_META_DESCRIPTION,
        severity=Severity.WARNING,
        url=f"https://www.example.com/{page}",
        details="Missing meta description",
    )


class TestIssueSignature:
    """Test cases for issue_signature."""

    def test_type_and_details(self):
        assert issue_signature(missing_description("a")) == "missing_meta_description:Missing meta description"

    def test_missing_details(self):
        issue = HtmlIssue(type=HtmlIssueType.MISSING_H1, severity=Severity.ERROR)
        assert issue_signature(issue) == "missing_h1:"


class TestDeduplicateIssues:
    """Test cases for deduplicate_issues."""

    def test_template_wide_issue_collapses(self):
        """An issue on 8 of 10 pages is reported once with its page count."""
        issues = [missing_description(f"p{i}") for i in range(8)]

        result = deduplicate_issues(issues, total_pages=10)

        assert len(result) == 1
        assert result[0].url == "https://www.example.com/p0"
        assert result[0].details == "Missing meta description [Found on 8 pages]"
        # Source issues are left untouched
        assert issues[0].details == "Missing meta description"

    def test_minority_issue_kept_per_page(self):
        issues = [missing_description(f"p{i}") for i in range(5)]

        result = deduplicate_issues(issues, total_pages=10)

        assert result == issues

    def test_small_sites_never_collapse(self):
        """With two or fewer pages nothing is collapsed."""
        issues = [missing_description("a"), missing_description("b")]

        assert deduplicate_issues(issues, total_pages=2) == issues

    def test_repeat_for_same_url_dropped(self):
        issues = [
            missing_description("a"),
            missing_description("a/"),
            missing_description("a#top"),
            missing_description("b"),
        ]

        result = deduplicate_issues(issues, total_pages=10)

        assert [i.url for i in result] == [
            "https://www.example.com/a",
            "https://www.example.com/b",
        ]

    def test_issues_without_url_are_kept_once(self):
        issues = [
            HtmlIssue(type=HtmlIssueType.MISSING_H1, severity=Severity.ERROR, details="x"),
            HtmlIssue(type=HtmlIssueType.MISSING_H1, severity=Severity.ERROR, details="x"),
        ]

        assert len(deduplicate_issues(issues, total_pages=10)) == 1

    def test_groups_keep_first_appearance_order(self):
        title = HtmlIssue(
            type=HtmlIssueType.MISSING_TITLE, severity=Severity.ERROR,
            url="https://www.example.com/x", details="Page has no title",
        )
        issues = [missing_description("a"), title, missing_description("b")]

        result = deduplicate_issues(issues, total_pages=10)

        assert [i.type for i in result] == [
            HtmlIssueType.MISSING_META_DESCRIPTION,
            HtmlIssueType.MISSING_META_DESCRIPTION,
            HtmlIssueType.MISSING_TITLE,
        ]

    def test_custom_ratio(self):
        issues = [missing_description(f"p{i}") for i in range(5)]
        thresholds = AuditThresholds(dedup_page_ratio=0.4)

        result = deduplicate_issues(issues, total_pages=10, thresholds=thresholds)

        assert len(result) == 1
        assert result[0].details.endswith("[Found on 5 pages]")
