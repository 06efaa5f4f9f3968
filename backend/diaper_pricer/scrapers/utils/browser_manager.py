"""Playwright browser lifecycle for retailers that render listings with JS.

A page is loaded as an explicit sequence of awaited steps (navigate,
inspect, wait for listings, scroll, capture) and every load ends in a typed
BrowserOutcome. Contexts are opened per load and always closed, including
when the caller is cancelled.
"""

import asyncio
import random
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Iterable, Optional, Sequence

import structlog
from playwright.async_api import (
    async_playwright,
    Browser,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
)

from diaper_pricer.config import settings
from diaper_pricer.scrapers.utils.block_detection import BLOCK_MARKERS, detect_block
from diaper_pricer.scrapers.utils.retry import playwright_retry
from diaper_pricer.scrapers.utils.user_agents import ACCEPT_LANGUAGE, get_random_user_agent

logger = structlog.get_logger(__name__)


OUTCOME_SUCCESS = "success"
OUTCOME_BLOCKED = "blocked"
OUTCOME_ERROR = "error"


@dataclass
class BrowserOutcome:
    """Result of one page load."""

    status: str
    url: str
    html: str = ""
    detail: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == OUTCOME_SUCCESS

    @classmethod
    def success(cls, url: str, html: str) -> "BrowserOutcome":
        return cls(OUTCOME_SUCCESS, url, html=html)

    @classmethod
    def blocked(cls, url: str, marker: str) -> "BrowserOutcome":
        return cls(OUTCOME_BLOCKED, url, detail=marker)

    @classmethod
    def error(cls, url: str, detail: str) -> "BrowserOutcome":
        return cls(OUTCOME_ERROR, url, detail=detail)


# Minimal stealth JS to mask automation signals
STEALTH_JS = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => ['en-CA', 'en', 'fr-CA'] });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
window.chrome = { runtime: {} };
"""

_BLOCKED_RESOURCES = "**/*.{png,jpg,jpeg,gif,svg,webp,woff,woff2,ttf,eot,mp4}"


class BrowserManager:
    """Owns one Chromium instance and hands out short-lived pages."""

    def __init__(
        self,
        headless: bool = True,
        block_resources: bool = True,
        navigation_timeout_ms: int = 30000,
        min_html_length: int = 1000,
    ):
        self._headless = headless
        self._block_resources = block_resources
        self._navigation_timeout_ms = navigation_timeout_ms
        self._min_html_length = min_html_length
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()

    async def start(self) -> None:
        """Launch the browser if it is not running yet."""
        async with self._lock:
            if self._browser:
                return
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self._headless,
                args=[
                    "--disable-blink-features=AutomationControlled",
                    "--disable-dev-shm-usage",
                    "--no-sandbox",
                ],
            )
            logger.info("browser_started", headless=self._headless)

    async def stop(self) -> None:
        """Close the browser and Playwright driver."""
        async with self._lock:
            if self._browser:
                await self._browser.close()
                self._browser = None
            if self._playwright:
                await self._playwright.stop()
                self._playwright = None
            logger.info("browser_stopped")

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Open an isolated context and page, closing both on exit."""
        if not self._browser:
            await self.start()

        context = await self._browser.new_context(
            user_agent=get_random_user_agent(),
            viewport={"width": 1366, "height": 900},
            locale="en-CA",
            timezone_id="America/Toronto",
            extra_http_headers={"Accept-Language": ACCEPT_LANGUAGE},
        )
        try:
            await context.add_init_script(STEALTH_JS)
            if self._block_resources:
                await context.route(_BLOCKED_RESOURCES, lambda route: route.abort())
            page = await context.new_page()
            yield page
        finally:
            await context.close()

    @playwright_retry
    async def _navigate(self, page: Page, url: str) -> Optional[int]:
        response = await page.goto(url, wait_until="domcontentloaded", timeout=self._navigation_timeout_ms)
        return response.status if response else None

    @staticmethod
    async def _wait_for_listings(page: Page, selectors: Sequence[str], timeout_ms: int = 10000) -> bool:
        if not selectors:
            return True
        try:
            await page.wait_for_selector(", ".join(selectors), timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    @staticmethod
    async def _scroll_like_a_person(page: Page, steps: int) -> None:
        for _ in range(steps):
            await page.mouse.wheel(0, random.randint(300, 700))
            await asyncio.sleep(random.uniform(0.3, 0.9))

    async def load(
        self,
        url: str,
        ready_selectors: Sequence[str] = (),
        block_markers: Iterable[str] = BLOCK_MARKERS,
        scroll_steps: int = 3,
    ) -> BrowserOutcome:
        """Load a listing page and classify the result.

        Args:
            url: Page to load
            ready_selectors: Any of these appearing means listings rendered
            block_markers: Lowercase substrings identifying challenge pages
            scroll_steps: Mouse-wheel steps used to trigger lazy loading

        Returns:
            BrowserOutcome with status success, blocked or error
        """
        markers = list(block_markers)
        log = logger.bind(url=url)

        try:
            async with self.page() as page:
                status = await self._navigate(page, url)

                marker = detect_block(
                    await page.content(), status, expect_html=False, markers=markers
                )
                if marker:
                    log.warning("browser_load_blocked", marker=marker, step="navigate")
                    return BrowserOutcome.blocked(url, marker)

                if not await self._wait_for_listings(page, ready_selectors):
                    log.info("listing_selectors_not_found")

                await self._scroll_like_a_person(page, scroll_steps)

                html = await page.content()
                marker = detect_block(
                    html, status, min_html_length=self._min_html_length, markers=markers
                )
                if marker:
                    log.warning("browser_load_blocked", marker=marker, step="capture")
                    return BrowserOutcome.blocked(url, marker)

                return BrowserOutcome.success(url, html)
        except PlaywrightError as e:
            log.warning("browser_load_failed", error=str(e))
            return BrowserOutcome.error(url, str(e))


# Singleton instance
_browser_manager: Optional[BrowserManager] = None


def get_browser_manager() -> BrowserManager:
    """Get the global BrowserManager singleton."""
    global _browser_manager
    if _browser_manager is None:
        _browser_manager = BrowserManager(
            headless=settings.HEADLESS,
            min_html_length=settings.MIN_HTML_LENGTH,
        )
    return _browser_manager
