"""Resilient HTTP fetching shared by all retailer adapters.

Handles transport concerns only: header rotation per attempt, per-host
pacing, jittered exponential backoff on transient failures, and
classification of anti-bot responses. It never looks at page semantics.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
import structlog

from diaper_pricer.config import settings
from diaper_pricer.core.exceptions import (
    BlockedResponseError,
    FetchError,
    RetriesExhaustedError,
    TransientFetchError,
)
from diaper_pricer.scrapers.utils.block_detection import detect_block
from diaper_pricer.scrapers.utils.rate_limiter import DomainRateLimiter
from diaper_pricer.scrapers.utils.retry import fetch_retrying, wait_jittered_backoff
from diaper_pricer.scrapers.utils.user_agents import build_browser_headers

logger = structlog.get_logger(__name__)


@dataclass
class FetchResult:
    """A response body that passed block detection."""

    url: str
    status_code: int
    body: str
    attempts: int = 1
    succeeded: bool = True

    def json(self) -> Any:
        return json.loads(self.body)


class ResilientFetcher:
    """GET with retries, header rotation and block detection.

    One instance is shared by every adapter in a job. Blocked responses raise
    BlockedResponseError straight away so the adapter can move to its next
    URL variant; transient failures are retried and, once attempts run out,
    surface as RetriesExhaustedError carrying the last error.
    """

    def __init__(
        self,
        rate_limiter: Optional[DomainRateLimiter] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        jitter: Optional[float] = None,
        min_html_length: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.rate_limiter = rate_limiter
        self.timeout = timeout if timeout is not None else settings.FETCH_TIMEOUT_SECONDS
        self.max_attempts = max_attempts or settings.FETCH_MAX_ATTEMPTS
        self.min_html_length = (
            min_html_length if min_html_length is not None else settings.MIN_HTML_LENGTH
        )
        self.wait = wait_jittered_backoff(
            base=base_delay if base_delay is not None else settings.FETCH_BASE_DELAY_SECONDS,
            jitter=jitter if jitter is not None else settings.FETCH_JITTER_SECONDS,
            max_delay=max_delay if max_delay is not None else settings.FETCH_MAX_DELAY_SECONDS,
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ResilientFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def fetch(
        self,
        url: str,
        *,
        expect_html: bool = True,
        referer: Optional[str] = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> FetchResult:
        """Fetch a URL, retrying transient failures.

        Args:
            url: Absolute URL to GET
            expect_html: Apply the short-body block check and ask for HTML
            referer: Referer header to send
            extra_headers: Headers merged over the rotated set

        Returns:
            FetchResult for a genuine-looking response

        Raises:
            BlockedResponseError: Response looked like an anti-bot challenge
            RetriesExhaustedError: Every attempt failed transiently
            FetchError: Non-retryable HTTP error such as 404
        """
        attempts = 0
        try:
            async for attempt in fetch_retrying(self.max_attempts, self.wait):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    return await self._attempt(url, attempts, expect_html, referer, extra_headers)
        except TransientFetchError as e:
            logger.warning("fetch_retries_exhausted", url=url, attempts=attempts, error=e.message)
            raise RetriesExhaustedError(url, attempts, last_error=e) from e

        raise FetchError(url, "no attempt was made")

    async def fetch_json(self, url: str, **kwargs) -> Any:
        """Fetch a JSON endpoint and decode the body."""
        result = await self.fetch(url, expect_html=False, **kwargs)
        try:
            return result.json()
        except ValueError as e:
            raise FetchError(url, "response is not valid JSON", last_error=e) from e

    async def _attempt(
        self,
        url: str,
        attempt_number: int,
        expect_html: bool,
        referer: Optional[str],
        extra_headers: Optional[Dict[str, str]],
    ) -> FetchResult:
        headers = build_browser_headers(referer=referer, accept_json=not expect_html)
        if extra_headers:
            headers.update(extra_headers)

        if self.rate_limiter is not None:
            await self.rate_limiter.acquire(url)

        log = logger.bind(url=url, attempt=attempt_number)
        log.debug("fetching_url", user_agent=headers["User-Agent"][:40])

        try:
            response = await self._get_client().get(url, headers=headers)
        except httpx.TimeoutException as e:
            raise TransientFetchError(url, f"timeout ({type(e).__name__})", last_error=e) from e
        except httpx.TransportError as e:
            raise TransientFetchError(url, f"transport error ({type(e).__name__})", last_error=e) from e

        status = response.status_code
        if status == 429 or status >= 500:
            raise TransientFetchError(url, f"HTTP {status}", status_code=status)

        body = response.text
        marker = detect_block(
            body,
            status_code=status,
            expect_html=expect_html,
            min_html_length=self.min_html_length,
        )
        if marker:
            log.warning("response_blocked", marker=marker, status_code=status, length=len(body))
            raise BlockedResponseError(url, marker)

        if status >= 400:
            raise FetchError(url, f"HTTP {status}")

        log.debug("fetch_succeeded", status_code=status, length=len(body))
        return FetchResult(url=url, status_code=status, body=body, attempts=attempt_number)
