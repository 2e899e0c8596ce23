"""URL liveness checking with timeouts, GET fallback and a bounded worker pool."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import httpx

from site_audit.client import NETWORK_ERRORS
from site_audit.constants import (
    BROKEN_STATUSES,
    DEFAULT_BATCH_CONCURRENCY,
    GET_FALLBACK_TIMEOUT_SECONDS,
    HEAD_TIMEOUT_SECONDS,
    UNREACHABLE_STATUS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UrlStatus:
    """Outcome of one liveness probe."""
    status: int
    content_type: str = ""
    redirect_url: Optional[str] = None

    @property
    def reachable(self) -> bool:
        return self.status != UNREACHABLE_STATUS


@dataclass(frozen=True)
class LinkCheck:
    """Liveness result for a URL in a batch, with its referring page."""
    url: str
    status: int
    source: Optional[str] = None


def is_broken_status(status: int) -> bool:
    """True for statuses that mean an expected target is missing.

    Unreachable (0) counts as broken, same as 404.
    """
    return status in BROKEN_STATUSES


class LivenessChecker:
    """Checks whether URLs exist without downloading their bodies.

    A HEAD probe is tried first with redirects left visible. Any network
    error or timeout falls back to a streamed GET; if that fails too the
    status is 0.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        head_timeout: float = HEAD_TIMEOUT_SECONDS,
        get_timeout: float = GET_FALLBACK_TIMEOUT_SECONDS,
    ):
        self.client = client
        self.head_timeout = head_timeout
        self.get_timeout = get_timeout

    async def check(self, url: str) -> UrlStatus:
        """Probe a single URL.

        Args:
            url: Absolute URL to check

        Returns:
            UrlStatus with the HTTP status, or status 0 if unreachable
        """
        try:
            return await self._head(url)
        except NETWORK_ERRORS as e:
            logger.debug(f"HEAD failed for {url}: {e!r}, falling back to GET")

        try:
            return await self._get(url)
        except NETWORK_ERRORS as e:
            logger.debug(f"GET fallback failed for {url}: {e!r}")

        return UrlStatus(status=UNREACHABLE_STATUS)

    async def _head(self, url: str) -> UrlStatus:
        response = await asyncio.wait_for(
            self.client.head(url, follow_redirects=False, timeout=self.head_timeout),
            timeout=self.head_timeout,
        )
        return self._to_status(response)

    async def _get(self, url: str) -> UrlStatus:
        request = self.client.build_request("GET", url, timeout=self.get_timeout)
        response = await asyncio.wait_for(
            self.client.send(request, stream=True, follow_redirects=False),
            timeout=self.get_timeout,
        )
        try:
            return self._to_status(response)
        finally:
            await response.aclose()

    @staticmethod
    def _to_status(response: httpx.Response) -> UrlStatus:
        return UrlStatus(
            status=response.status_code,
            content_type=response.headers.get("content-type", ""),
            redirect_url=response.headers.get("location") or None,
        )

    async def check_batch(
        self,
        items: Iterable[tuple[str, Optional[str]]],
        concurrency: int = DEFAULT_BATCH_CONCURRENCY,
        delay: float = 0.0,
    ) -> list[LinkCheck]:
        """Check many URLs with at most ``concurrency`` probes in flight.

        A fixed set of workers drains a shared queue; each worker pulls the
        next job only after finishing its current one. Results come back in
        input order and are never written to shared state by the workers.

        Args:
            items: (url, source) pairs
            concurrency: Maximum number of simultaneous probes
            delay: Pause each worker takes after a probe (seconds)

        Returns:
            One LinkCheck per input item, in input order
        """
        jobs = list(items)
        if not jobs:
            return []

        queue: asyncio.Queue = asyncio.Queue()
        for index, (url, source) in enumerate(jobs):
            queue.put_nowait((index, url, source))

        results: list[Optional[LinkCheck]] = [None] * len(jobs)

        async def worker() -> list[tuple[int, LinkCheck]]:
            done = []
            while True:
                try:
                    index, url, source = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return done
                url_status = await self.check(url)
                done.append((index, LinkCheck(url=url, status=url_status.status, source=source)))
                if delay > 0:
                    await asyncio.sleep(delay)

        worker_count = max(1, min(concurrency, len(jobs)))
        workers = [asyncio.ensure_future(worker()) for _ in range(worker_count)]
        try:
            for finished in await asyncio.gather(*workers):
                for index, check in finished:
                    results[index] = check
        finally:
            pending = [task for task in workers if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        return results
