"""
Trust signal checks for e-commerce sites.

Looks for the pages and details shoppers expect before buying:
- Contact, terms, privacy and shipping pages (Czech and English paths)
- Contact details and company identifiers on the homepage
- A current copyright year in the footer
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, ClassVar, List, Optional, Sequence, Tuple

import httpx
from bs4 import BeautifulSoup

from site_audit.client import NETWORK_ERRORS
from site_audit.constants import PROBE_TIMEOUT_SECONDS
from site_audit.models import Issue, Severity
from site_audit.url_utils import site_origin

logger = logging.getLogger(__name__)

CONTACT_PATHS = ('/kontakt', '/contact', '/kontakty', '/contacts', '/kontakt.html')
TERMS_PATHS = ('/obchodni-podminky', '/terms', '/vseobecne-obchodni-podminky', '/vop', '/terms-and-conditions')
PRIVACY_PATHS = ('/ochrana-osobnich-udaju', '/privacy', '/gdpr', '/privacy-policy', '/zasady-ochrany-osobnich-udaju')
SHIPPING_PATHS = ('/doprava', '/doprava-a-platba', '/shipping', '/delivery', '/doprava-platba')

COPYRIGHT_PATTERN = re.compile(r'©\s*(\d{4})|copyright\s*(\d{4})', re.IGNORECASE)
PHONE_PATTERN = re.compile(r'(\+?\d{3}[\s-]?\d{3}[\s-]?\d{3}[\s-]?\d{3})|(\d{3}[\s-]?\d{3}[\s-]?\d{3})')
EMAIL_PATTERN = re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}')
COMPANY_ID_PATTERN = re.compile(r'IČO?:?\s*\d{8}|DIČ:?\s*[A-Z]{2}\d+', re.IGNORECASE)
ADDRESS_INDICATORS = ('ulice', 'ul.', 'street', 'adresa', 'sídlo', 'psč', 'zip')

# Score penalties
MISSING_CONTACT_PAGE_PENALTY = 20
MISSING_TERMS_PENALTY = 20
MISSING_PRIVACY_PENALTY = 10
MISSING_SHIPPING_PENALTY = 10
MISSING_CONTACT_INFO_PENALTY = 15
MISSING_COMPANY_INFO_PENALTY = 10
OUTDATED_COPYRIGHT_PENALTY = 5


class TrustIssueType(str, Enum):
    MISSING_CONTACT_PAGE = "missing_contact_page"
    MISSING_CONTACT_INFO = "missing_contact_info"
    MISSING_TERMS = "missing_terms"
    MISSING_PRIVACY_POLICY = "missing_privacy_policy"
    MISSING_SHIPPING_INFO = "missing_shipping_info"
    MISSING_PAYMENT_INFO = "missing_payment_info"
    OUTDATED_COPYRIGHT = "outdated_copyright"
    MISSING_COMPANY_INFO = "missing_company_info"
    MISSING_PHONE = "missing_phone"
    MISSING_EMAIL = "missing_email"
    MISSING_ADDRESS = "missing_address"


@dataclass
class TrustIssue(Issue):
    TYPE_ENUM: ClassVar[type] = TrustIssueType
    CATEGORY: ClassVar[str] = "trust"


@dataclass
class TrustAnalysis:
    """Trust signals found on a site."""
    has_contact_page: bool = False
    has_terms_page: bool = False
    has_privacy_page: bool = False
    has_shipping_info: bool = False
    has_payment_info: bool = False
    copyright_year: Optional[int] = None
    has_phone: bool = False
    has_email: bool = False
    has_address: bool = False
    has_company_info: bool = False

    def is_copyright_outdated(self, current_year: int) -> bool:
        return bool(self.copyright_year) and self.copyright_year < current_year - 1

    def to_dict(self) -> dict:
        return {
            "hasContactPage": self.has_contact_page,
            "hasTermsPage": self.has_terms_page,
            "hasPrivacyPage": self.has_privacy_page,
            "hasShippingInfo": self.has_shipping_info,
            "hasPaymentInfo": self.has_payment_info,
            "copyrightYear": self.copyright_year,
            "hasPhone": self.has_phone,
            "hasEmail": self.has_email,
            "hasAddress": self.has_address,
            "hasCompanyInfo": self.has_company_info,
        }


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TrustChecker:
    """Probes a site for trust pages and homepage contact details."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = PROBE_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.client = client
        self.timeout = timeout
        self.clock = clock

    async def _page_exists(self, base_url: str, paths: Sequence[str]) -> bool:
        """True if any of the paths answers a HEAD request with 2xx."""
        for path in paths:
            try:
                response = await self.client.head(
                    f"{base_url}{path}", timeout=self.timeout, follow_redirects=True
                )
            except NETWORK_ERRORS as e:
                logger.debug(f"Trust page probe failed for {base_url}{path}: {e!r}")
                continue
            if response.is_success:
                return True
        return False

    async def check_trust_pages(self, site_url: str) -> Tuple[TrustAnalysis, List[TrustIssue]]:
        """Run all trust checks against a site.

        Args:
            site_url: Site origin

        Returns:
            Tuple of (TrustAnalysis, list of TrustIssue)
        """
        base_url = site_origin(site_url)
        analysis = TrustAnalysis()
        issues: List[TrustIssue] = []

        contact, terms, privacy, shipping = await asyncio.gather(
            self._page_exists(base_url, CONTACT_PATHS),
            self._page_exists(base_url, TERMS_PATHS),
            self._page_exists(base_url, PRIVACY_PATHS),
            self._page_exists(base_url, SHIPPING_PATHS),
        )
        analysis.has_contact_page = contact
        analysis.has_terms_page = terms
        analysis.has_privacy_page = privacy
        analysis.has_shipping_info = shipping
        analysis.has_payment_info = shipping  # Usually on the same page

        if not contact:
            issues.append(TrustIssue(
                type=TrustIssueType.MISSING_CONTACT_PAGE, severity=Severity.ERROR,
                details="No contact page found",
            ))
        if not terms:
            issues.append(TrustIssue(
                type=TrustIssueType.MISSING_TERMS, severity=Severity.ERROR,
                details="No terms and conditions page found",
            ))
        if not privacy:
            issues.append(TrustIssue(
                type=TrustIssueType.MISSING_PRIVACY_POLICY, severity=Severity.WARNING,
                details="No privacy policy page found",
            ))
        if not shipping:
            issues.append(TrustIssue(
                type=TrustIssueType.MISSING_SHIPPING_INFO, severity=Severity.WARNING,
                details="No shipping information found",
            ))

        current_year = self.clock().year
        html = await self._fetch_homepage(base_url)
        if html is not None:
            self._analyze_homepage(html, analysis)
            if analysis.is_copyright_outdated(current_year):
                issues.append(TrustIssue(
                    type=TrustIssueType.OUTDATED_COPYRIGHT, severity=Severity.WARNING,
                    details=f"Copyright year {analysis.copyright_year} is outdated (current year: {current_year})",
                ))

        if not analysis.has_phone and not analysis.has_email:
            issues.append(TrustIssue(
                type=TrustIssueType.MISSING_CONTACT_INFO, severity=Severity.WARNING,
                details="Homepage has no contact information (phone or email)",
            ))

        if not analysis.has_company_info:
            issues.append(TrustIssue(
                type=TrustIssueType.MISSING_COMPANY_INFO, severity=Severity.WARNING,
                details="Page has no company identifiers (IČO, DIČ)",
            ))

        return analysis, issues

    async def _fetch_homepage(self, base_url: str) -> Optional[str]:
        try:
            response = await self.client.get(base_url, timeout=self.timeout, follow_redirects=True)
        except NETWORK_ERRORS as e:
            logger.warning(f"Failed to fetch homepage {base_url}: {e!r}")
            return None
        if not response.is_success:
            return None
        return response.text

    @staticmethod
    def _analyze_homepage(html: str, analysis: TrustAnalysis) -> None:
        soup = BeautifulSoup(html, "html.parser")

        footer_text = " ".join(footer.get_text(" ") for footer in soup.find_all("footer"))
        match = COPYRIGHT_PATTERN.search(footer_text)
        if match:
            analysis.copyright_year = int(match.group(1) or match.group(2))

        analysis.has_phone = bool(PHONE_PATTERN.search(html))
        analysis.has_email = bool(EMAIL_PATTERN.search(html))
        lowered = html.lower()
        analysis.has_address = any(indicator in lowered for indicator in ADDRESS_INDICATORS)
        analysis.has_company_info = bool(COMPANY_ID_PATTERN.search(html))


def calculate_trust_score(analysis: TrustAnalysis, current_year: Optional[int] = None) -> int:
    """Score trust signals from 0 to 100.

    Args:
        analysis: Result of TrustChecker.check_trust_pages
        current_year: Year used for the copyright check; defaults to now

    Returns:
        Trust score, floored at 0
    """
    if current_year is None:
        current_year = _utc_now().year

    score = 100
    if not analysis.has_contact_page:
        score -= MISSING_CONTACT_PAGE_PENALTY
    if not analysis.has_terms_page:
        score -= MISSING_TERMS_PENALTY
    if not analysis.has_privacy_page:
        score -= MISSING_PRIVACY_PENALTY
    if not analysis.has_shipping_info:
        score -= MISSING_SHIPPING_PENALTY
    if not analysis.has_phone and not analysis.has_email:
        score -= MISSING_CONTACT_INFO_PENALTY
    if not analysis.has_company_info:
        score -= MISSING_COMPANY_INFO_PENALTY
    if analysis.is_copyright_outdated(current_year):
        score -= OUTDATED_COPYRIGHT_PENALTY

    return max(0, score)
