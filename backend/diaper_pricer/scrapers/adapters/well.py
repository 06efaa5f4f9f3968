"""Well.ca adapter.

Well.ca renders its product grid client-side, so pages are loaded through
the shared Playwright BrowserManager instead of the HTTP fetcher.
"""

from typing import List, Optional
from urllib.parse import quote

from diaper_pricer.core.exceptions import BlockedResponseError, FetchError
from diaper_pricer.scrapers.base import BaseRetailerAdapter, RawItem
from diaper_pricer.scrapers.fetcher import ResilientFetcher
from diaper_pricer.scrapers.utils.browser_manager import (
    OUTCOME_BLOCKED,
    BrowserManager,
    get_browser_manager,
)


class WellAdapter(BaseRetailerAdapter):
    """Well.ca browser-rendered search adapter."""

    retailer_key = "well"
    retailer_name = "Well.ca"
    base_url = "https://well.ca"
    uses_browser = True

    CARD_SELECTORS = [
        ".product-listing .product-grid-item",
        ".product-grid-item",
        ".product-grid .product-item",
        ".product-item",
        "[data-product-id]",
        ".product-card",
        ".product",
    ]
    TITLE_SELECTORS = [
        ".product-title",
        ".product-name",
        "h3",
        ".title",
        "a.name",
        '[itemprop="name"]',
        "h2",
        ".name",
    ]
    PRICE_SELECTORS = [
        ".product-price",
        ".price",
        ".special-price",
        ".current-price",
        '[itemprop="price"]',
        ".money",
        ".amount",
    ]
    LINK_SELECTORS = ["a.product-link[href]", ".product-title a[href]", "a[href]"]

    def __init__(self, fetcher: ResilientFetcher, browser_manager: Optional[BrowserManager] = None, **kwargs):
        super().__init__(fetcher, **kwargs)
        self.browser_manager = browser_manager or get_browser_manager()

    def build_search_urls(self, query: str) -> List[str]:
        q = quote(query)
        return [
            f"{self.base_url}/en/search?q={q}",
            f"{self.base_url}/en/c/baby-child?q={q}",
            f"{self.base_url}/en/c/baby-child/diapers-potty?q={q}",
            f"{self.base_url}/en/search?q={q}&sort=best_selling",
            f"{self.base_url}/en/search?q={q}&sort=price_ascending",
        ]

    async def fetch_items(self, url: str) -> List[RawItem]:
        outcome = await self.browser_manager.load(url, ready_selectors=self.CARD_SELECTORS[:4])
        if outcome.status == OUTCOME_BLOCKED:
            raise BlockedResponseError(url, outcome.detail or "unknown")
        if not outcome.succeeded:
            raise FetchError(url, f"browser load failed: {outcome.detail}")
        return self.parse_items(outcome.html)

    def _extract_price_text(self, card) -> str:
        price = super()._extract_price_text(card)
        if price:
            return price
        # Some grids only expose the amount as an attribute
        holder = card if card.has_attr("data-price") else card.select_one("[data-price]")
        return holder.get("data-price", "") if holder else ""
