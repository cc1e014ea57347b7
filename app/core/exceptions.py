from typing import Optional


class ScanError(Exception):
    """Base class for errors raised while preparing or running a scan."""

    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ScanError):
    """The submitted URL list is empty or contains an unusable URL."""


class QuotaError(ScanError):
    """The request exceeds what the caller's plan allows."""

    def __init__(self, message: str, reason: str, payment_required: bool, requirement: Optional[dict] = None):
        super().__init__(message)
        self.reason = reason
        self.payment_required = payment_required
        self.requirement = requirement or {}

    @property
    def http_status(self):
        return 402 if self.payment_required else 429

    @classmethod
    def from_decision(cls, decision):
        return cls(
            decision.message,
            reason=decision.reason,
            payment_required=decision.payment_required,
            requirement=decision.requirement(),
        )


class PageFetchError(ScanError):
    """The page to scan could not be retrieved or parsed."""

    def __init__(self, message: str, page_status: int = 0):
        super().__init__(message)
        self.page_status = page_status


class LinkCheckError(ScanError):
    """A single link could not be reached."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url
