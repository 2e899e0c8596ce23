"""Exceptions raised by the site auditor."""


class SiteAuditError(Exception):
    """Base class for site auditor errors."""


class InvalidSiteUrlError(SiteAuditError):
    """Raised when caller input cannot be turned into an http(s) origin."""

    def __init__(self, message: str, raw_url: str = None):
        self.message = message
        self.raw_url = raw_url
        super().__init__(message)


class AuditCancelledError(SiteAuditError):
    """Raised inside an audit run when its cancellation event is set."""

    def __init__(self, message: str = "Audit cancelled"):
        self.message = message
        super().__init__(message)
