"""Tests for block detection, rate limiting, header rotation and backoff."""

import time

import pytest

from diaper_pricer.scrapers.utils.block_detection import detect_block
from diaper_pricer.scrapers.utils.rate_limiter import DomainRateLimiter, TokenBucket
from diaper_pricer.scrapers.utils.retry import wait_jittered_backoff
from diaper_pricer.scrapers.utils.user_agents import (
    USER_AGENTS,
    build_browser_headers,
    get_random_user_agent,
)

LISTING_PAGE = "<html><body>" + "<div class='product'>Pampers Diapers</div>" * 50 + "</body></html>"


# ============================================================================
# Block detection
# ============================================================================


class TestDetectBlock:
    """Tests for detect_block()."""

    def test_genuine_page(self):
        assert detect_block(LISTING_PAGE, 200) is None

    def test_http_403(self):
        assert detect_block(LISTING_PAGE, 403) == "http_403"

    def test_captcha_marker(self):
        body = LISTING_PAGE + "<form action='/errors/validateCaptcha'>Enter the characters</form>"
        assert detect_block(body, 200) == "captcha"

    def test_access_denied_marker_case_insensitive(self):
        assert detect_block("<h1>Access Denied</h1>" + LISTING_PAGE, 200) == "access denied"

    def test_short_body(self):
        assert detect_block("<html></html>", 200) == "short_body"

    def test_short_body_ignored_for_json(self):
        assert detect_block('{"products": []}', 200, expect_html=False) is None


# ============================================================================
# Rate limiting
# ============================================================================


class TestTokenBucket:
    """Tests for TokenBucket."""

    async def test_starts_full(self):
        bucket = TokenBucket(rate=1.0, capacity=3)
        for _ in range(3):
            assert await bucket.acquire() == 0.0

    async def test_waits_when_empty(self):
        bucket = TokenBucket(rate=50.0, capacity=1)
        await bucket.acquire()

        start = time.monotonic()
        waited = await bucket.acquire()

        assert waited > 0
        assert time.monotonic() - start >= 0.01


class TestDomainRateLimiter:
    """Tests for DomainRateLimiter."""

    def test_domain_of_url(self):
        assert DomainRateLimiter.domain_of("https://www.Amazon.ca/s?k=pampers") == "www.amazon.ca"

    def test_domain_of_bare_host(self):
        assert DomainRateLimiter.domain_of("well.ca") == "well.ca"

    def test_configured_rate(self):
        limiter = DomainRateLimiter()
        assert limiter.get_current_rate("https://www.amazon.ca/s?k=x") == pytest.approx(6.0)
        assert limiter.get_current_rate("https://www.walmart.ca/en/search?q=x") == pytest.approx(10.0)

    def test_default_rate_for_unknown_host(self):
        limiter = DomainRateLimiter()
        assert limiter.get_current_rate("https://example.com/") == pytest.approx(DomainRateLimiter.DEFAULT_RPM)

    def test_override_limits(self):
        limiter = DomainRateLimiter(limits_rpm={"www.amazon.ca": 30})
        assert limiter.get_current_rate("www.amazon.ca") == pytest.approx(30.0)

    async def test_hosts_are_paced_independently(self):
        limiter = DomainRateLimiter(limits_rpm={"a.example": 1, "b.example": 1})
        # Burst capacity is 2 per host
        assert await limiter.acquire("https://a.example/1") == 0.0
        assert await limiter.acquire("https://a.example/2") == 0.0
        assert await limiter.acquire("https://b.example/1") == 0.0


# ============================================================================
# Header rotation
# ============================================================================


class TestBrowserHeaders:
    """Tests for header construction."""

    def test_random_user_agent_from_pool(self):
        assert get_random_user_agent() in USER_AGENTS

    def test_chrome_sends_client_hints(self):
        ua = USER_AGENTS[0]
        headers = build_browser_headers(user_agent=ua)

        assert headers["User-Agent"] == ua
        assert '"Google Chrome";v="131"' in headers["sec-ch-ua"]
        assert headers["sec-ch-ua-platform"] == '"Windows"'
        assert headers["Sec-Fetch-Mode"] == "navigate"

    def test_firefox_has_no_client_hints(self):
        ua = next(agent for agent in USER_AGENTS if "Firefox" in agent)
        headers = build_browser_headers(user_agent=ua)
        assert "sec-ch-ua" not in headers

    def test_json_request_headers(self):
        headers = build_browser_headers(user_agent=USER_AGENTS[0], referer="https://www.walmart.ca", accept_json=True)

        assert headers["Accept"].startswith("application/json")
        assert headers["X-Requested-With"] == "XMLHttpRequest"
        assert headers["Sec-Fetch-Site"] == "same-origin"
        assert headers["Referer"] == "https://www.walmart.ca"

    def test_default_referer_is_cross_site(self):
        headers = build_browser_headers(user_agent=USER_AGENTS[0])
        assert headers["Referer"] == "https://www.google.ca/"
        assert headers["Sec-Fetch-Site"] == "cross-site"


# ============================================================================
# Backoff
# ============================================================================


class TestJitteredBackoff:
    """Tests for wait_jittered_backoff."""

    def test_exponential_without_jitter(self):
        wait = wait_jittered_backoff(base=1.0, factor=2.0, jitter=0, max_delay=100)
        assert [wait.compute(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]

    def test_capped(self):
        wait = wait_jittered_backoff(base=5.0, factor=3.0, jitter=0, max_delay=10.0)
        assert wait.compute(4) == 10.0

    def test_jitter_bounds(self):
        wait = wait_jittered_backoff(base=1.0, factor=1.0, jitter=0.5, max_delay=10.0)
        for _ in range(20):
            assert 1.0 <= wait.compute(1) <= 1.5
