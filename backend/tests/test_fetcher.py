"""Tests for ResilientFetcher retry, block and error classification."""

import httpx
import pytest
import pytest_asyncio

from diaper_pricer.core.exceptions import (
    BlockedResponseError,
    FetchError,
    RetriesExhaustedError,
    TransientFetchError,
)
from diaper_pricer.scrapers.fetcher import ResilientFetcher

URL = "https://www.walmart.ca/en/search?q=pampers+diapers+size+3"
LISTING_PAGE = "<html><body>" + "<div class='product'>Pampers Diapers</div>" * 10 + "</body></html>"


class ScriptedTransport:
    """Serves a queue of responses (or exceptions) and records requests."""

    def __init__(self, *steps):
        self.steps = list(steps)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        step = self.steps.pop(0) if len(self.steps) > 1 else self.steps[0]
        if isinstance(step, Exception):
            raise step
        return step


def make_fetcher(transport: ScriptedTransport, **kwargs) -> ResilientFetcher:
    options = {
        "rate_limiter": None,
        "max_attempts": 3,
        "base_delay": 0,
        "max_delay": 0,
        "jitter": 0,
        "min_html_length": 100,
        "transport": httpx.MockTransport(transport),
    }
    options.update(kwargs)
    return ResilientFetcher(**options)


@pytest_asyncio.fixture
async def closing():
    """Collect fetchers and close their clients after the test."""
    fetchers = []
    yield fetchers
    for fetcher in fetchers:
        await fetcher.close()


# ============================================================================
# Success and retry
# ============================================================================


class TestFetchRetries:
    """Transient failures are retried, then surfaced with the last error."""

    async def test_success_first_attempt(self, closing):
        transport = ScriptedTransport(httpx.Response(200, text=LISTING_PAGE))
        fetcher = make_fetcher(transport)
        closing.append(fetcher)

        result = await fetcher.fetch(URL)

        assert result.status_code == 200
        assert result.body == LISTING_PAGE
        assert result.attempts == 1
        assert len(transport.requests) == 1

    async def test_retries_5xx_then_succeeds(self, closing):
        transport = ScriptedTransport(
            httpx.Response(503, text="unavailable"),
            httpx.Response(200, text=LISTING_PAGE),
        )
        fetcher = make_fetcher(transport)
        closing.append(fetcher)

        result = await fetcher.fetch(URL)

        assert result.attempts == 2
        assert len(transport.requests) == 2

    async def test_retries_timeout(self, closing):
        transport = ScriptedTransport(
            httpx.ConnectTimeout("timed out"),
            httpx.Response(200, text=LISTING_PAGE),
        )
        fetcher = make_fetcher(transport)
        closing.append(fetcher)

        result = await fetcher.fetch(URL)
        assert result.attempts == 2

    async def test_exhausted_after_max_attempts(self, closing):
        transport = ScriptedTransport(httpx.Response(429, text="slow down"))
        fetcher = make_fetcher(transport, max_attempts=3)
        closing.append(fetcher)

        with pytest.raises(RetriesExhaustedError) as exc_info:
            await fetcher.fetch(URL)

        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, TransientFetchError)
        assert exc_info.value.last_error.status_code == 429
        assert len(transport.requests) == 3

    async def test_headers_rotate_per_attempt(self, closing):
        transport = ScriptedTransport(
            httpx.Response(502, text="bad gateway"),
            httpx.Response(200, text=LISTING_PAGE),
        )
        fetcher = make_fetcher(transport)
        closing.append(fetcher)

        await fetcher.fetch(URL, referer="https://www.walmart.ca")

        for request in transport.requests:
            assert request.headers["user-agent"]
            assert request.headers["referer"] == "https://www.walmart.ca"


# ============================================================================
# Non-retryable outcomes
# ============================================================================


class TestFetchClassification:
    """Blocked and permanent failures are not retried."""

    async def test_captcha_is_blocked_without_retry(self, closing):
        body = LISTING_PAGE + "<p>Type the characters you see in this image (captcha)</p>"
        transport = ScriptedTransport(httpx.Response(200, text=body))
        fetcher = make_fetcher(transport)
        closing.append(fetcher)

        with pytest.raises(BlockedResponseError) as exc_info:
            await fetcher.fetch(URL)

        assert exc_info.value.marker == "captcha"
        assert len(transport.requests) == 1

    async def test_403_is_blocked(self, closing):
        transport = ScriptedTransport(httpx.Response(403, text=LISTING_PAGE))
        fetcher = make_fetcher(transport)
        closing.append(fetcher)

        with pytest.raises(BlockedResponseError) as exc_info:
            await fetcher.fetch(URL)
        assert exc_info.value.marker == "http_403"

    async def test_short_html_is_blocked(self, closing):
        transport = ScriptedTransport(httpx.Response(200, text="<html></html>"))
        fetcher = make_fetcher(transport)
        closing.append(fetcher)

        with pytest.raises(BlockedResponseError):
            await fetcher.fetch(URL)

    async def test_404_is_fetch_error(self, closing):
        transport = ScriptedTransport(httpx.Response(404, text=LISTING_PAGE))
        fetcher = make_fetcher(transport)
        closing.append(fetcher)

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(URL)

        assert not isinstance(exc_info.value, (BlockedResponseError, RetriesExhaustedError))
        assert "HTTP 404" in exc_info.value.message
        assert len(transport.requests) == 1


# ============================================================================
# JSON endpoints
# ============================================================================


class TestFetchJson:
    """Tests for fetch_json()."""

    async def test_decodes_json(self, closing):
        transport = ScriptedTransport(httpx.Response(200, json={"products": [{"displayName": "Pampers"}]}))
        fetcher = make_fetcher(transport)
        closing.append(fetcher)

        data = await fetcher.fetch_json(URL)

        assert data == {"products": [{"displayName": "Pampers"}]}
        assert transport.requests[0].headers["accept"].startswith("application/json")

    async def test_invalid_json(self, closing):
        transport = ScriptedTransport(httpx.Response(200, text="not json at all"))
        fetcher = make_fetcher(transport)
        closing.append(fetcher)

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch_json(URL)
        assert "not valid JSON" in exc_info.value.message
