"""Custom exception classes for the application."""

from typing import Optional


class DiaperPricerException(Exception):
    """Base exception for all diaper-pricer errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(DiaperPricerException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class ScraperError(DiaperPricerException):
    """Raised when a retailer adapter cannot complete its run."""

    def __init__(self, retailer: str, message: str):
        self.retailer = retailer
        super().__init__(f"Scraper error for {retailer}: {message}")


class StorageError(DiaperPricerException):
    """Raised when a catalog write fails."""


class FetchError(DiaperPricerException):
    """Base class for fetch failures against a single URL."""

    def __init__(self, url: str, message: str, last_error: Optional[BaseException] = None):
        self.url = url
        self.last_error = last_error
        super().__init__(f"Fetch failed for {url}: {message}")


class TransientFetchError(FetchError):
    """Timeout, connection reset, 429 or 5xx. Retried by the fetcher."""

    def __init__(
        self,
        url: str,
        message: str,
        status_code: Optional[int] = None,
        last_error: Optional[BaseException] = None,
    ):
        self.status_code = status_code
        super().__init__(url, message, last_error=last_error)


class BlockedResponseError(FetchError):
    """Response looks like an anti-bot challenge. Not retried on the same URL."""

    def __init__(self, url: str, marker: str):
        self.marker = marker
        super().__init__(url, f"blocked ({marker})")


class RetriesExhaustedError(FetchError):
    """All attempts for a URL failed with transient errors."""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException] = None):
        self.attempts = attempts
        detail = str(last_error) if last_error else "unknown error"
        super().__init__(url, f"gave up after {attempts} attempts: {detail}", last_error=last_error)
