"""URL resolution, classification and normalization helpers."""

from typing import Optional
from urllib.parse import urljoin, urlparse, urlunparse

from site_audit.constants import ASSET_EXTENSIONS, NON_CRAWLABLE_PREFIXES
from site_audit.exceptions import InvalidSiteUrlError

_DEFAULT_PORTS = {'http': 80, 'https': 443}


def site_origin(url: str) -> str:
    """Return ``scheme://host[:port]`` for a URL."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def resolve_url(href: str, base_origin: str, current_page_url: str) -> Optional[str]:
    """Turn an href/src value into an absolute http(s) URL.

    Args:
        href: Raw attribute value from the page
        base_origin: Site origin used for root-relative paths
        current_page_url: URL of the page the value was found on

    Returns:
        Absolute URL, or None for non-crawlable or malformed values
    """
    if not href:
        return None

    href = href.strip()
    lowered = href.lower()
    if not href or lowered.startswith(NON_CRAWLABLE_PREFIXES):
        return None

    try:
        if lowered.startswith(('http://', 'https://')):
            resolved = href
        elif href.startswith('//'):
            resolved = f"https:{href}"
        elif href.startswith('/'):
            resolved = f"{base_origin.rstrip('/')}{href}"
        else:
            page = urlparse(current_page_url)
            path = page.path or '/'
            directory = path[:path.rfind('/') + 1]
            resolved = urljoin(f"{page.scheme}://{page.netloc}{directory}", href)

        parsed = urlparse(resolved)
        parsed.port  # Raises ValueError on a malformed port
    except ValueError:
        return None

    if parsed.scheme.lower() not in ('http', 'https') or not parsed.netloc:
        return None

    return resolved


def _host_key(url: str) -> str:
    """Host plus any non-default port, lowercased."""
    parsed = urlparse(url)
    host = (parsed.hostname or '').lower()
    if not host:
        raise ValueError(f"URL has no host: {url!r}")
    port = parsed.port
    if port is not None and _DEFAULT_PORTS.get(parsed.scheme.lower()) != port:
        return f"{host}:{port}"
    return host


def origin_key(url: str) -> str:
    """Comparable ``scheme://host[:port]`` with case and default ports folded.

    Raises:
        ValueError: If the URL has no host or a malformed port
    """
    return f"{urlparse(url).scheme.lower()}://{_host_key(url)}"


def is_external_url(url: str, base_origin: str) -> bool:
    """True if ``url`` lives on a different host than ``base_origin``.

    Invalid URLs are reported as not external.
    """
    try:
        return _host_key(url) != _host_key(base_origin)
    except ValueError:
        return False


def normalize_page_url(url: str) -> str:
    """Canonical form used for page identity.

    Drops the fragment, default ports and trailing slashes (except the root
    path) so that equivalent page URLs compare equal.
    """
    try:
        parsed = urlparse(url)
        scheme = parsed.scheme.lower()
        host = (parsed.hostname or '').lower()
        port = parsed.port
    except ValueError:
        return url

    if not scheme or not host:
        return url

    netloc = host
    if port is not None and _DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{host}:{port}"

    path = parsed.path or '/'
    if path != '/' and path.endswith('/'):
        path = path.rstrip('/') or '/'

    return urlunparse((scheme, netloc, path, parsed.params, parsed.query, ''))


def is_asset_url(url: str) -> bool:
    """True if the URL path points at a static asset rather than a page."""
    try:
        path = urlparse(url).path.lower()
    except ValueError:
        return False
    return path.endswith(ASSET_EXTENSIONS)


def strip_www(hostname: str) -> str:
    return hostname[4:] if hostname.startswith('www.') else hostname


def normalize_site_input(raw_url: Optional[str]) -> str:
    """Normalize user input into a site origin.

    Adds ``https://`` when no scheme is given and ``www.`` for bare
    two-label domains, then reduces the URL to its origin.

    Raises:
        InvalidSiteUrlError: If the input is empty or not a usable URL
    """
    if raw_url is None or not raw_url.strip():
        raise InvalidSiteUrlError("URL is required", raw_url)

    url = raw_url.strip()
    has_scheme = url.lower().startswith(('http://', 'https://'))
    if not has_scheme:
        if not url.lower().startswith('www.'):
            url = f"www.{url}"
        url = f"https://{url}"

    try:
        parsed = urlparse(url)
        hostname = parsed.hostname or ''
        port = parsed.port
    except ValueError:
        raise InvalidSiteUrlError("Invalid URL", raw_url)

    scheme = parsed.scheme.lower()
    if scheme not in ('http', 'https') or not hostname or ' ' in hostname:
        raise InvalidSiteUrlError("Invalid URL", raw_url)

    # Bare domains like "shop.cz" get www., subdomains and localhost do not
    if (
        has_scheme
        and not hostname.startswith('www.')
        and 'localhost' not in hostname
        and len(hostname.split('.')) == 2
    ):
        hostname = f"www.{hostname}"

    netloc = hostname if port is None else f"{hostname}:{port}"
    return f"{scheme}://{netloc}"
