# src/site_audit/constants.py
"""Centralized constants for the site auditor.

This module contains magic numbers and fixed lists that are used across
multiple modules. For user-configurable limits and thresholds, see config.py
(AuditConfig and AuditThresholds).
"""

# =============================================================================
# HTTP Constants
# =============================================================================

# User agent sent with every outbound request
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; SiteAuditBot/1.0)"

# Liveness probe timeouts (seconds)
HEAD_TIMEOUT_SECONDS = 5.0
GET_FALLBACK_TIMEOUT_SECONDS = 8.0

# Full page fetch timeout for analysis (seconds)
PAGE_TIMEOUT_SECONDS = 15.0

# Timeout for one-shot config/security probes (seconds)
PROBE_TIMEOUT_SECONDS = 10.0

# Status reported when a URL could not be reached at all
UNREACHABLE_STATUS = 0

# Statuses treated as "broken" for targets expected to exist
BROKEN_STATUSES = frozenset({404, UNREACHABLE_STATUS})


# =============================================================================
# Crawler Constants
# =============================================================================

# Maximum pages analyzed per audit
DEFAULT_MAX_PAGES = 50

# Maximum external links liveness-checked per audit
DEFAULT_MAX_EXTERNAL_LINKS = 30

# Maximum images liveness-checked per audit
DEFAULT_MAX_IMAGES_TO_CHECK = 50

# Default worker pool size for batch liveness checks
DEFAULT_BATCH_CONCURRENCY = 10

# Courtesy delays between successive liveness checks (seconds)
CRAWL_DELAY_SECONDS = 0.1
INTERNAL_LINK_DELAY_SECONDS = 0.05
EXTERNAL_LINK_DELAY_SECONDS = 0.1
IMAGE_DELAY_SECONDS = 0.05

# Links with these path suffixes are never added to the crawl frontier
ASSET_EXTENSIONS = (
    '.jpg', '.jpeg', '.png', '.gif', '.svg', '.pdf', '.zip',
    '.css', '.js', '.xml', '.ico', '.webp',
)

# Schemes and prefixes that are not crawlable
NON_CRAWLABLE_PREFIXES = ('javascript:', 'mailto:', 'tel:', '#', 'data:')

# href values that count as "empty" links
EMPTY_LINK_HREFS = frozenset({'#', 'javascript:void(0)', 'javascript:;'})


# =============================================================================
# Sitemap and Config Probe Constants
# =============================================================================

# Candidate sitemap locations, tried in order
SITEMAP_PATHS = ('/sitemap.xml', '/sitemap_index.xml', '/sitemap-index.xml')

# Maximum nesting depth for sitemap index recursion
MAX_SITEMAP_DEPTH = 3

# Candidate favicon locations, tried in order
FAVICON_PATHS = ('/favicon.ico', '/favicon.png', '/apple-touch-icon.png')


# =============================================================================
# Page Analysis Constants
# =============================================================================

# Max characters kept per sampled image src
IMAGE_SAMPLE_MAX_CHARS = 100

# Max characters kept per sampled empty link text
LINK_TEXT_SAMPLE_MAX_CHARS = 50

# Hosts whose stylesheet links count as webfont references
WEBFONT_HOSTS = ('fonts.googleapis.com', 'fonts.gstatic.com')

# Tags whose http:// src attribute loads a sub-resource
MIXED_CONTENT_SRC_TAGS = ('img', 'script', 'iframe', 'embed', 'audio', 'video', 'source')

# Script hosts that never raise untrusted_scripts (suffix match on subdomains)
TRUSTED_SCRIPT_DOMAINS = (
    'googleapis.com',
    'gstatic.com',
    'google.com',
    'googletagmanager.com',
    'google-analytics.com',
    'facebook.net',
    'facebook.com',
    'cloudflare.com',
    'cloudflareinsights.com',
    'jquery.com',
    'jsdelivr.net',
    'unpkg.com',
    'cdnjs.cloudflare.com',
    'shoptet.cz',
)


# =============================================================================
# Scoring Constants
# =============================================================================

# Flat penalty per broken page/link/image
LINK_ERROR_PENALTY = 5

# (error penalty, warning penalty) per issue category
CATEGORY_PENALTIES = {
    'performance': (10, 3),
    'html': (10, 3),
    'config': (15, 5),
    'security': (20, 5),
}

MAX_SCORE = 100


# =============================================================================
# Streaming Constants
# =============================================================================

SSE_DATA_PREFIX = 'data: '
SSE_RECORD_SEPARATOR = '\n\n'
