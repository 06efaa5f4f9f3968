"""Per-domain request pacing with token buckets."""

import asyncio
import time
from typing import Dict, Optional
from urllib.parse import urlparse


class TokenBucket:
    """Bucket that starts full and refills at a constant rate.

    Each request takes one token; callers wait when the bucket is empty.
    """

    def __init__(self, rate: float, capacity: float):
        """Initialize token bucket.

        Args:
            rate: Tokens added per second
            capacity: Burst size
        """
        self.rate = rate
        self.capacity = capacity
        self.tokens = capacity
        self.last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self.last_refill) * self.rate)
        self.last_refill = now

    async def acquire(self, tokens: float = 1.0) -> float:
        """Take tokens, sleeping until enough have accumulated.

        Returns:
            Seconds spent waiting
        """
        waited = 0.0
        async with self._lock:
            while True:
                self._refill()
                if self.tokens >= tokens:
                    self.tokens -= tokens
                    return waited
                wait_time = (tokens - self.tokens) / self.rate
                waited += wait_time
                await asyncio.sleep(wait_time)


class DomainRateLimiter:
    """One token bucket per retailer host.

    Adapters for different retailers run concurrently, so limits are kept
    per host rather than globally.
    """

    # Requests per minute for retailer hosts
    DOMAIN_LIMITS_RPM: Dict[str, int] = {
        "www.amazon.ca": 6,
        "www.walmart.ca": 10,
        "www.costco.ca": 6,
        "shop.shoppersdrugmart.ca": 10,
        "www.realcanadiansuperstore.ca": 10,
        "www.canadiantire.ca": 10,
        "well.ca": 6,
    }

    DEFAULT_RPM = 10

    def __init__(self, limits_rpm: Optional[Dict[str, int]] = None, default_rpm: Optional[int] = None):
        self._limits = {**self.DOMAIN_LIMITS_RPM, **(limits_rpm or {})}
        self._default_rpm = default_rpm or self.DEFAULT_RPM
        self._buckets: Dict[str, TokenBucket] = {}

    @staticmethod
    def domain_of(url_or_domain: str) -> str:
        """Host part of a URL; bare hosts pass through."""
        if "://" in url_or_domain:
            return urlparse(url_or_domain).netloc.lower()
        return url_or_domain.lower()

    @staticmethod
    def _make_bucket(rpm: int) -> TokenBucket:
        # Burst of 10% of the per-minute budget, at least 2
        return TokenBucket(rate=rpm / 60.0, capacity=max(2.0, rpm / 10.0))

    def _get_bucket(self, domain: str) -> TokenBucket:
        if domain not in self._buckets:
            rpm = self._limits.get(domain, self._default_rpm)
            self._buckets[domain] = self._make_bucket(rpm)
        return self._buckets[domain]

    async def acquire(self, url_or_domain: str) -> float:
        """Wait for a request slot on the URL's host.

        Args:
            url_or_domain: Full URL or host name

        Returns:
            Seconds spent waiting
        """
        return await self._get_bucket(self.domain_of(url_or_domain)).acquire()

    def get_current_rate(self, url_or_domain: str) -> float:
        """Configured requests per minute for a host."""
        return self._get_bucket(self.domain_of(url_or_domain)).rate * 60.0
