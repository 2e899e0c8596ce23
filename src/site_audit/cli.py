"""Command-line interface for the site auditor."""

import asyncio
import json
import sys
from datetime import datetime, timezone
from typing import Optional

from site_audit.client import create_http_client
from site_audit.config import AuditConfig, AuditThresholds, settings
from site_audit.exceptions import AuditCancelledError, InvalidSiteUrlError, SiteAuditError
from site_audit.logging_config import setup_logging
from site_audit.models import AuditReport, Phase, ProgressEvent
from site_audit.site_auditor import SiteAuditor, run_audit
from site_audit.streaming import format_sse
from site_audit.trust_checks import TrustChecker, calculate_trust_score
from site_audit.url_utils import normalize_site_input


def _write_output(output: str, output_file: Optional[str]) -> None:
    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(output)
        print(f"Results written to {output_file}")
    else:
        print(output)


def _normalize_or_exit(raw_url: str) -> str:
    try:
        return normalize_site_input(raw_url)
    except InvalidSiteUrlError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(2)


def print_progress(event: ProgressEvent) -> None:
    """Print one progress line to stderr."""
    if event.is_terminal:
        return
    parts = [f"[{Phase(event.phase).value}]"]
    if event.current is not None and event.total is not None:
        parts.append(f"{event.current}/{event.total}")
    if event.message:
        parts.append(event.message)
    if event.current_url:
        parts.append(event.current_url)
    print(" ".join(parts), file=sys.stderr)


def print_report(report: AuditReport) -> None:
    """Print an audit report in a formatted way."""
    scores = report.scores

    print(f"\n{'=' * 60}")
    print(f"Site Audit for: {report.site_url}")
    print(f"{'=' * 60}")
    print(f"\nPages: {report.total_pages}  Links: {report.total_links}  Images: {report.total_images}")

    if scores is not None:
        print(f"\n📊 Overall Score: {scores.overall}/100")
        print("\nCategory Scores:")
        print(f"  • Links: {scores.links}/100")
        print(f"  • Performance: {scores.performance}/100")
        print(f"  • HTML: {scores.html}/100")
        print(f"  • Config: {scores.config}/100")
        print(f"  • Security: {scores.security}/100")

    broken = [
        ("Broken pages", report.errors.pages404),
        ("Broken internal links", report.errors.internal_links404),
        ("Broken images", report.errors.broken_images),
        ("Broken external links", report.errors.external_links404),
    ]
    for label, results in broken:
        if results:
            print(f"\n❌ {label} ({len(results)}):")
            for result in results:
                source = f" (on {result.source})" if result.source else ""
                print(f"  • {result.url}{source}")

    for category, issues in report.issues_by_category().items():
        if not issues:
            continue
        print(f"\n⚠️  {category.capitalize()} ({len(issues)}):")
        for issue in issues:
            where = f" {issue.url}" if issue.url else ""
            print(f"  • [{issue.severity.value}] {issue.type.value}{where}: {issue.details or ''}")

    print(f"\n{'=' * 60}\n")


def _build_config(args) -> AuditConfig:
    config = AuditConfig.from_env()
    if args.max_pages is not None:
        config.max_pages = args.max_pages
    if args.max_external_links is not None:
        config.max_external_links = args.max_external_links
    if args.concurrency is not None:
        config.check_concurrency = args.concurrency
    return config


def _build_thresholds(args) -> AuditThresholds:
    if args.thresholds_file:
        return AuditThresholds.from_file(args.thresholds_file)
    return AuditThresholds.from_env()


async def _stream_sse(site_url: str, config: AuditConfig, thresholds: AuditThresholds) -> bool:
    """Print raw SSE records; returns True if the run completed."""
    completed = False
    auditor = SiteAuditor(config=config, thresholds=thresholds)
    async for event in auditor.audit(site_url):
        sys.stdout.write(format_sse(event))
        sys.stdout.flush()
        completed = event.phase == Phase.COMPLETE
    return completed


def audit_command(args):
    """Audit a site and print the report."""
    site_url = _normalize_or_exit(args.url)
    config = _build_config(args)
    thresholds = _build_thresholds(args)

    if args.sse:
        if not asyncio.run(_stream_sse(site_url, config, thresholds)):
            sys.exit(1)
        return

    try:
        report = asyncio.run(run_audit(
            site_url,
            config=config,
            thresholds=thresholds,
            on_progress=None if args.quiet else print_progress,
        ))
    except AuditCancelledError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(130)
    except SiteAuditError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.output == "json":
        _write_output(json.dumps(report.to_dict(), indent=2, ensure_ascii=False), args.output_file)
    else:
        print_report(report)


async def _check_trust(site_url: str):
    async with create_http_client(user_agent=settings.USER_AGENT) as client:
        return await TrustChecker(client).check_trust_pages(site_url)


def trust_command(args):
    """Check trust pages and contact details for a site."""
    site_url = _normalize_or_exit(args.url)
    analysis, issues = asyncio.run(_check_trust(site_url))
    score = calculate_trust_score(analysis, datetime.now(timezone.utc).year)

    if args.output == "json":
        result = {
            "siteUrl": site_url,
            "score": score,
            "analysis": analysis.to_dict(),
            "issues": [issue.to_dict() for issue in issues],
        }
        _write_output(json.dumps(result, indent=2, ensure_ascii=False), args.output_file)
        return

    print(f"\n{'=' * 60}")
    print(f"Trust Check for: {site_url}")
    print(f"{'=' * 60}")
    print(f"\n📊 Trust Score: {score}/100")
    if issues:
        print("\n⚠️  Issues:")
        for issue in issues:
            print(f"  • [{issue.severity.value}] {issue.type.value}: {issue.details}")
    else:
        print("\n✅ No trust issues found")
    print(f"\n{'=' * 60}\n")


def serve_command(args):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run(
        "site_audit.api:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
    )


def main(argv=None):
    """Main CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Site Audit - Crawl a website and report broken links and technical issues"
    )

    # Global flags (before subcommands)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.LOG_LEVEL.upper() if settings.LOG_LEVEL else "INFO",
        help="Set logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        default=settings.LOG_FILE,
        help="Write logs to file in addition to console",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Audit command parser
    audit_parser = subparsers.add_parser("audit", help="Audit a website.")
    audit_parser.add_argument("url", help="Site URL or bare domain (e.g. shop.cz)")
    audit_parser.add_argument(
        "--output",
        "-o",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    audit_parser.add_argument(
        "--output-file",
        "-f",
        help="Write output to file (only for json format)",
    )
    audit_parser.add_argument(
        "--max-pages",
        type=int,
        help="Maximum pages to analyze (default: 50)",
    )
    audit_parser.add_argument(
        "--max-external-links",
        type=int,
        help="Maximum external links to check (default: 30)",
    )
    audit_parser.add_argument(
        "--concurrency",
        type=int,
        help="Concurrent liveness checks in the checking phase (default: 1)",
    )
    audit_parser.add_argument(
        "--thresholds-file",
        help="JSON file with issue thresholds",
    )
    audit_parser.add_argument(
        "--sse",
        action="store_true",
        help="Print raw server-sent-event records instead of a report",
    )
    audit_parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Do not print progress to stderr",
    )
    audit_parser.set_defaults(func=audit_command)

    # Trust command parser
    trust_parser = subparsers.add_parser("trust", help="Check trust pages and contact details.")
    trust_parser.add_argument("url", help="Site URL or bare domain")
    trust_parser.add_argument(
        "--output",
        "-o",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    trust_parser.add_argument(
        "--output-file",
        "-f",
        help="Write output to file (only for json format)",
    )
    trust_parser.set_defaults(func=trust_command)

    # Serve command parser
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve_parser.add_argument("--host", default=settings.HOST, help=f"Bind address (default: {settings.HOST})")
    serve_parser.add_argument("--port", type=int, default=settings.PORT, help=f"Port (default: {settings.PORT})")
    serve_parser.set_defaults(func=serve_command)

    args = parser.parse_args(argv)

    # Configure logging based on flags
    setup_logging(
        level=args.log_level,
        log_file=getattr(args, 'log_file', None),
    )

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
