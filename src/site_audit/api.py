"""FastAPI app: POST /api/site-audit streams audit progress as SSE."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sse_starlette.sse import EventSourceResponse

from site_audit.config import AuditConfig, AuditThresholds, settings
from site_audit.exceptions import InvalidSiteUrlError
from site_audit.logging_config import setup_logging
from site_audit.site_auditor import SiteAuditor
from site_audit.streaming import stream_sse
from site_audit.url_utils import site_origin

logger = logging.getLogger(__name__)


class AuditRequest(BaseModel):
    url: Optional[str] = None


def _origin_from_request_url(raw_url: Optional[str]) -> str:
    """Reduce the requested URL to its origin.

    Raises:
        InvalidSiteUrlError: If the URL is missing or not an absolute http(s) URL
    """
    if not raw_url or not raw_url.strip():
        raise InvalidSiteUrlError("URL is required", raw_url)

    try:
        parsed = httpx.URL(raw_url.strip())
    except httpx.InvalidURL:
        raise InvalidSiteUrlError("Invalid URL", raw_url)

    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise InvalidSiteUrlError("Invalid URL", raw_url)

    return site_origin(str(parsed))


async def relay_audit(
    auditor: SiteAuditor,
    site_url: str,
    cancel_event: Optional[asyncio.Event] = None,
) -> AsyncIterator[dict]:
    """Run an audit in its own task and relay its SSE items.

    Closing the relay (the client disconnected) sets the cancellation event
    and cancels the audit task, so no further requests go to the site.
    """
    if cancel_event is None:
        cancel_event = asyncio.Event()
    queue: asyncio.Queue = asyncio.Queue()

    async def run_and_signal_done():
        try:
            async for item in stream_sse(auditor.audit(site_url, cancel_event=cancel_event)):
                await queue.put(item)
        finally:
            queue.put_nowait(None)  # sentinel

    task = asyncio.create_task(run_and_signal_done())

    try:
        while True:
            item = await queue.get()
            if item is None:
                break
            yield item
    finally:
        if not task.done():
            logger.info(f"Client disconnected, cancelling audit of {site_url}")
            cancel_event.set()
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)


def _get_auditor(request: Request) -> SiteAuditor:
    return request.app.state.auditor


def create_app(
    config: Optional[AuditConfig] = None,
    thresholds: Optional[AuditThresholds] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the HTTP application.

    Args:
        config: Audit configuration; read from the environment when omitted
        thresholds: Issue thresholds; read from the environment when omitted
        transport: Optional httpx transport used for outbound requests

    Returns:
        FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
        logger.info("site audit service ready")
        yield
        logger.info("shutting down site audit service")

    app = FastAPI(title="Site Audit", lifespan=lifespan)
    app.state.auditor = SiteAuditor(
        config=config or AuditConfig.from_env(),
        thresholds=thresholds or AuditThresholds.from_env(),
        transport=transport,
    )

    @app.post("/api/site-audit")
    async def site_audit(body: AuditRequest, auditor: SiteAuditor = Depends(_get_auditor)):
        try:
            site_url = _origin_from_request_url(body.url)
        except InvalidSiteUrlError as e:
            return JSONResponse(status_code=400, content={"error": e.message})

        return EventSourceResponse(
            relay_audit(auditor, site_url),
            headers={"Cache-Control": "no-cache"},
            sep="\n",
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
