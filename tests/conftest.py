"""Fixtures: an in-memory fake website served through httpx.MockTransport."""

from typing import Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio

from site_audit.client import create_http_client

SITE = "https://www.example.com"


def route_key(url) -> Tuple[str, str, Optional[int], str, str]:
    parsed = url if isinstance(url, httpx.URL) else httpx.URL(url)
    return (parsed.scheme, parsed.host, parsed.port, parsed.path or "/", parsed.query.decode())


class FakeSite:
    """Serves canned responses keyed by URL; unknown URLs answer 404.

    Every request is recorded as (method, url) in ``requests``.
    """

    def __init__(self):
        self.routes: Dict[tuple, dict] = {}
        self.requests: List[Tuple[str, str]] = []

    def add(
        self,
        url: str,
        body: str = "",
        status: int = 200,
        content_type: str = "text/html; charset=utf-8",
        headers: Optional[dict] = None,
        head_status: Optional[int] = None,
    ) -> "FakeSite":
        self.routes[route_key(url)] = {
            "body": body,
            "status": status,
            "head_status": head_status,
            "headers": {"content-type": content_type, **(headers or {})},
        }
        return self

    def fail(self, url: str, exc_type=httpx.ConnectError, methods=("HEAD", "GET")) -> "FakeSite":
        self.routes[route_key(url)] = {"raise": exc_type, "methods": methods}
        return self

    def redirect(self, url: str, location: str, status: int = 301) -> "FakeSite":
        return self.add(url, status=status, headers={"location": location})

    def requested(self, method: Optional[str] = None) -> List[str]:
        return [url for m, url in self.requests if method is None or m == method]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, str(request.url)))
        route = self.routes.get(route_key(request.url))

        if route is None:
            return httpx.Response(404, text="Not Found", request=request)

        if "raise" in route:
            if request.method in route["methods"]:
                raise route["raise"]("simulated failure", request=request)
            return httpx.Response(200, request=request)

        status = route["status"]
        if request.method == "HEAD" and route["head_status"] is not None:
            status = route["head_status"]

        return httpx.Response(
            status,
            headers=route["headers"],
            content=route["body"].encode("utf-8"),
            request=request,
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def html_page(title: Optional[str] = "Page", body: str = "", head: str = "") -> str:
    """Build a page with a title and a meta description."""
    title_tag = f"<title>{title}</title>" if title is not None else ""
    return (
        "<html><head>"
        f"{title_tag}"
        '<meta name="description" content="A page">'
        f"{head}"
        "</head><body>"
        f"{body}"
        "</body></html>"
    )


@pytest.fixture
def fake_site() -> FakeSite:
    return FakeSite()


@pytest_asyncio.fixture
async def client(fake_site):
    """AsyncClient routed to the fake site."""
    http_client = create_http_client(transport=fake_site.transport())
    yield http_client
    await http_client.aclose()
