"""Audit orchestrator: probes, discovery, crawl, liveness checks and report.

The run is exposed as an async generator of ProgressEvent values ending in
either a ``complete`` event carrying the report or an ``error`` event
carrying a message. Transports (SSE, CLI) consume the same sequence.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Dict, List, Optional, Set, Tuple

import httpx

from site_audit.client import create_http_client
from site_audit.config import AuditConfig, AuditThresholds, default_thresholds
from site_audit.deduplication import deduplicate_issues
from site_audit.exceptions import AuditCancelledError, SiteAuditError
from site_audit.issues import (
    generate_config_issues,
    generate_html_issues,
    generate_performance_issues,
    generate_security_issues,
)
from site_audit.liveness import LivenessChecker, is_broken_status
from site_audit.models import (
    AuditErrors,
    AuditReport,
    ConfigIssue,
    CrawlResult,
    HtmlIssue,
    PerformanceIssue,
    Phase,
    ProgressEvent,
    ResultType,
    SecurityIssue,
)
from site_audit.page_analyzer import PageAnalyzer
from site_audit.scoring import calculate_scores
from site_audit.site_checks import SiteChecker
from site_audit.sitemap_parser import SitemapParser
from site_audit.url_utils import is_asset_url, is_external_url, normalize_page_url

logger = logging.getLogger(__name__)

CONFIG_PROBE_COUNT = 4
BROKEN_RECORDED_STATUS = 404


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AuditState:
    """Working collections for one audit run; owned by the orchestrating flow."""
    site_url: str
    sitemap_urls: List[str] = field(default_factory=list)  # From the sitemap probe
    frontier: List[str] = field(default_factory=list)
    queued: Set[str] = field(default_factory=set)  # Normalized frontier URLs
    scanned: Set[str] = field(default_factory=set)  # Normalized URLs already visited
    fetched: Set[str] = field(default_factory=set)  # Normalized URLs that got any response

    # URL -> first page that referenced it
    links: Dict[str, str] = field(default_factory=dict)
    images: Dict[str, str] = field(default_factory=dict)

    errors: AuditErrors = field(default_factory=AuditErrors)
    performance: List[PerformanceIssue] = field(default_factory=list)
    html: List[HtmlIssue] = field(default_factory=list)
    config: List[ConfigIssue] = field(default_factory=list)
    security: List[SecurityIssue] = field(default_factory=list)

    def enqueue(self, url: str) -> None:
        self.frontier.append(url)
        self.queued.add(normalize_page_url(url))


@dataclass(frozen=True)
class CheckGroup:
    """One batch of URLs verified in the checking phase."""
    result_type: ResultType
    items: List[Tuple[str, str]]
    delay: float
    bucket: List[CrawlResult]
    external: Optional[bool] = None  # None = classify each URL


class SiteAuditor:
    """Drives a complete audit of one site.

    One instance may run several audits; no state is shared between runs.
    """

    def __init__(
        self,
        config: Optional[AuditConfig] = None,
        thresholds: Optional[AuditThresholds] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize the auditor.

        Args:
            config: Crawl limits, timeouts and delays
            thresholds: Issue and deduplication thresholds
            client: Optional pre-built AsyncClient (not closed by the auditor)
            transport: Optional transport for the auditor's own client
            clock: Returns the current UTC time
        """
        self.config = config or AuditConfig()
        self.thresholds = thresholds or default_thresholds
        self._client = client
        self._transport = transport
        self.clock = clock

    @asynccontextmanager
    async def _client_context(self):
        if self._client is not None:
            yield self._client
            return

        client = create_http_client(
            user_agent=self.config.user_agent,
            timeout=self.config.probe_timeout,
            transport=self._transport,
        )
        try:
            yield client
        finally:
            await client.aclose()

    @staticmethod
    def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise AuditCancelledError()

    async def audit(
        self, site_url: str, cancel_event: Optional[asyncio.Event] = None
    ) -> AsyncIterator[ProgressEvent]:
        """Run an audit, yielding progress events.

        Args:
            site_url: Normalized site origin (``https://host`` or ``http://host``)
            cancel_event: Optional event; when set the run stops at the next checkpoint

        Yields:
            ProgressEvent values; the last one is ``complete`` or ``error``
        """
        logger.info(f"Starting audit of {site_url}")
        try:
            async with self._client_context() as client:
                async for event in self._run(client, site_url, cancel_event):
                    yield event
        except AuditCancelledError as e:
            logger.info(f"Audit of {site_url} cancelled")
            yield ProgressEvent(phase=Phase.ERROR, message=e.message)
        except Exception as e:
            logger.exception(f"Audit of {site_url} failed")
            yield ProgressEvent(phase=Phase.ERROR, message=str(e) or e.__class__.__name__)

    async def _run(
        self,
        client: httpx.AsyncClient,
        site_url: str,
        cancel_event: Optional[asyncio.Event],
    ) -> AsyncIterator[ProgressEvent]:
        state = AuditState(site_url=site_url)
        liveness = LivenessChecker(
            client, head_timeout=self.config.head_timeout, get_timeout=self.config.get_timeout
        )
        analyzer = PageAnalyzer(client, timeout=self.config.page_timeout, thresholds=self.thresholds)

        # Phase 1: site-level probes
        self._check_cancelled(cancel_event)
        async for event in self._run_config_probes(client, state, cancel_event):
            yield event

        # Phase 2: page list
        self._check_cancelled(cancel_event)
        yield ProgressEvent(phase=Phase.SITEMAP, current=0, total=1, message="Loading sitemap...")

        pages = state.sitemap_urls
        if not pages:
            pages = await SitemapParser(client, timeout=self.config.probe_timeout).discover(site_url)
        if not pages:
            pages = [site_url]

        for page_url in pages[:self.config.max_pages]:
            state.enqueue(page_url)

        logger.info(f"Crawling up to {self.config.max_pages} pages, starting with {len(state.frontier)}")
        yield ProgressEvent(
            phase=Phase.SITEMAP,
            current=len(state.frontier),
            total=len(state.frontier),
            message=f"Found {len(state.frontier)} pages",
        )

        # Phase 3: crawl and analyze
        index = 0
        while index < len(state.frontier):
            page_url = state.frontier[index]
            index += 1

            page_key = normalize_page_url(page_url)
            if page_key in state.scanned:
                continue
            state.scanned.add(page_key)

            self._check_cancelled(cancel_event)
            yield ProgressEvent(
                phase=Phase.CRAWLING,
                current=index,
                total=len(state.frontier),
                current_url=page_url,
            )

            await self._crawl_page(page_url, page_key, state, liveness, analyzer)

            if self.config.crawl_delay > 0:
                await asyncio.sleep(self.config.crawl_delay)

        # Phase 4: liveness of discovered links and images
        async for event in self._run_checks(state, liveness, cancel_event):
            yield event

        # Phase 5: report
        report = self._build_report(state)
        logger.info(
            f"Audit of {site_url} complete: {report.total_pages} pages, "
            f"overall score {report.scores.overall}"
        )
        yield ProgressEvent(phase=Phase.COMPLETE, report=report)

    async def _run_config_probes(
        self,
        client: httpx.AsyncClient,
        state: AuditState,
        cancel_event: Optional[asyncio.Event],
    ) -> AsyncIterator[ProgressEvent]:
        """Run the four probes concurrently, yielding progress as each finishes."""
        yield ProgressEvent(
            phase=Phase.CONFIG, current=0, total=CONFIG_PROBE_COUNT, message="Checking configuration..."
        )

        checker = SiteChecker(
            client, thresholds=self.thresholds, timeout=self.config.probe_timeout, clock=self.clock
        )
        site_url = state.site_url

        async def named(name: str, coro):
            return name, await coro

        tasks = [
            asyncio.ensure_future(named("robots", checker.check_robots_txt(site_url))),
            asyncio.ensure_future(named("sitemap", checker.check_sitemap_health(site_url))),
            asyncio.ensure_future(named("favicon", checker.check_favicon(site_url))),
            asyncio.ensure_future(named("https", checker.check_https_redirect(site_url))),
        ]
        messages = {
            "robots": "Checked robots.txt",
            "sitemap": "Checked sitemap",
            "favicon": "Checked favicon",
            "https": "Checked HTTPS redirect",
        }
        results = {}

        try:
            for completed, future in enumerate(asyncio.as_completed(tasks), start=1):
                name, result = await future
                results[name] = result
                yield ProgressEvent(
                    phase=Phase.CONFIG,
                    current=completed,
                    total=CONFIG_PROBE_COUNT,
                    message=messages[name],
                )
                self._check_cancelled(cancel_event)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        # Fixed order regardless of completion order
        state.config.extend(results["robots"])
        sitemap_issues, state.sitemap_urls = results["sitemap"]
        state.config.extend(sitemap_issues)
        if results["favicon"] is not None:
            state.config.append(results["favicon"])
        if results["https"] is not None:
            state.security.append(results["https"])

    async def _crawl_page(
        self,
        page_url: str,
        page_key: str,
        state: AuditState,
        liveness: LivenessChecker,
        analyzer: PageAnalyzer,
    ) -> None:
        url_status = await liveness.check(page_url)
        if url_status.reachable:
            state.fetched.add(page_key)

        if is_broken_status(url_status.status):
            state.errors.pages404.append(CrawlResult(
                url=page_url,
                status=BROKEN_RECORDED_STATUS,
                type=ResultType.PAGE,
                is_external=False,
            ))
            return

        analysis = await analyzer.analyze(page_url)
        if analysis is None:
            return

        is_homepage = page_key == normalize_page_url(state.site_url)
        state.performance.extend(generate_performance_issues(analysis, self.thresholds))
        state.html.extend(generate_html_issues(analysis))
        state.config.extend(generate_config_issues(analysis, is_homepage))
        state.security.extend(generate_security_issues(analysis))

        for link in analysis.links:
            state.links.setdefault(link, page_url)
        for image in analysis.images:
            state.images.setdefault(image, page_url)

        for link in analysis.links:
            if len(state.frontier) >= self.config.max_pages:
                break
            if is_external_url(link, state.site_url) or is_asset_url(link):
                continue
            if normalize_page_url(link) in state.queued:
                continue
            state.enqueue(link)

    async def _run_checks(
        self,
        state: AuditState,
        liveness: LivenessChecker,
        cancel_event: Optional[asyncio.Event],
    ) -> AsyncIterator[ProgressEvent]:
        site_url = state.site_url
        internal = [
            (link, source) for link, source in state.links.items()
            if not is_external_url(link, site_url) and normalize_page_url(link) not in state.scanned
        ]
        external = [
            (link, source) for link, source in state.links.items()
            if is_external_url(link, site_url)
        ][:self.config.max_external_links]
        images = list(state.images.items())[:self.config.max_images_to_check]

        groups = [
            CheckGroup(ResultType.LINK, internal, self.config.internal_link_delay,
                       state.errors.internal_links404, external=False),
            CheckGroup(ResultType.LINK, external, self.config.external_link_delay,
                       state.errors.external_links404, external=True),
            CheckGroup(ResultType.IMAGE, images, self.config.image_delay,
                       state.errors.broken_images),
        ]
        total = len(internal) + len(external) + len(images)

        self._check_cancelled(cancel_event)
        yield ProgressEvent(phase=Phase.CHECKING, current=0, total=total, message="Checking links...")

        checked = 0
        for group in groups:
            if self.config.check_concurrency > 1:
                self._check_cancelled(cancel_event)
                results = await liveness.check_batch(
                    group.items, concurrency=self.config.check_concurrency, delay=group.delay
                )
                for result in results:
                    checked += 1
                    yield ProgressEvent(
                        phase=Phase.CHECKING, current=checked, total=total, current_url=result.url
                    )
                    self._record_check(group, result.url, result.source, result.status, site_url)
                continue

            for url, source in group.items:
                self._check_cancelled(cancel_event)
                checked += 1
                yield ProgressEvent(phase=Phase.CHECKING, current=checked, total=total, current_url=url)

                url_status = await liveness.check(url)
                self._record_check(group, url, source, url_status.status, site_url)

                if group.delay > 0:
                    await asyncio.sleep(group.delay)

    @staticmethod
    def _record_check(
        group: CheckGroup, url: str, source: Optional[str], status: int, site_url: str
    ) -> None:
        if not is_broken_status(status):
            return
        external = group.external
        if external is None:
            external = is_external_url(url, site_url)
        group.bucket.append(CrawlResult(
            url=url,
            status=status or BROKEN_RECORDED_STATUS,
            type=group.result_type,
            source=source,
            is_external=external,
        ))

    def _build_report(self, state: AuditState) -> AuditReport:
        total_pages = len(state.fetched)
        report = AuditReport(
            site_url=state.site_url,
            scanned_at=self.clock(),
            total_pages=total_pages,
            total_links=len(state.links),
            total_images=len(state.images),
            errors=state.errors,
            performance=deduplicate_issues(state.performance, total_pages, self.thresholds),
            html=deduplicate_issues(state.html, total_pages, self.thresholds),
            config=deduplicate_issues(state.config, total_pages, self.thresholds),
            security=deduplicate_issues(state.security, total_pages, self.thresholds),
        )
        report.scores = calculate_scores(report)
        return report


async def run_audit(
    site_url: str,
    config: Optional[AuditConfig] = None,
    thresholds: Optional[AuditThresholds] = None,
    on_progress: Optional[Callable[[ProgressEvent], None]] = None,
    cancel_event: Optional[asyncio.Event] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AuditReport:
    """Run an audit to completion and return its report.

    Args:
        site_url: Normalized site origin
        config: Crawl limits, timeouts and delays
        thresholds: Issue thresholds
        on_progress: Called with every event, including the terminal one
        cancel_event: Optional cancellation event
        transport: Optional httpx transport override

    Returns:
        The final AuditReport

    Raises:
        AuditCancelledError: If the run was cancelled
        SiteAuditError: If the run ended with an error event
    """
    auditor = SiteAuditor(config=config, thresholds=thresholds, transport=transport)

    async for event in auditor.audit(site_url, cancel_event=cancel_event):
        if on_progress is not None:
            on_progress(event)
        if event.phase == Phase.COMPLETE:
            return event.report
        if event.phase == Phase.ERROR:
            if cancel_event is not None and cancel_event.is_set():
                raise AuditCancelledError(event.message)
            raise SiteAuditError(event.message)

    raise SiteAuditError("Audit ended without a result")
