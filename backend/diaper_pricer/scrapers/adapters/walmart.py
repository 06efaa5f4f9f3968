"""Walmart Canada adapter.

Tries the JSON search endpoint the storefront itself calls, then falls back
to the rendered search page for the same query.
"""

from typing import Any, Dict, List
from urllib.parse import quote

from diaper_pricer.core.exceptions import FetchError
from diaper_pricer.scrapers.base import BaseRetailerAdapter, RawItem
from diaper_pricer.scrapers.utils.normalizer import normalize_url


class WalmartAdapter(BaseRetailerAdapter):
    """Walmart.ca search adapter (JSON API first, HTML second)."""

    retailer_key = "walmart"
    retailer_name = "Walmart Canada"
    base_url = "https://www.walmart.ca"

    API_PATH = "/api/wcs/v2/search/preso"

    CARD_SELECTORS = [
        'div[data-automation="product-tile"]',
        ".product-tile",
        'div[data-testid="product-tile"]',
        ".shelf-item",
    ]
    TITLE_SELECTORS = ['[data-automation="name"]', ".product-name", "h3", ".product-title"]
    PRICE_SELECTORS = ['[data-automation="current-price"]', ".price", ".price-current", ".product-price"]

    def build_search_urls(self, query: str) -> List[str]:
        q = quote(query)
        return [
            f"{self.base_url}{self.API_PATH}?q={q}&sort=price_asc&ps=20&p=1&lang=en",
            f"{self.base_url}/en/search?q={q}",
        ]

    def _is_api_url(self, url: str) -> bool:
        return self.API_PATH in url

    async def fetch_items(self, url: str) -> List[RawItem]:
        if not self._is_api_url(url):
            return await super().fetch_items(url)

        query = url.split("q=", 1)[1].split("&", 1)[0]
        data = await self.fetcher.fetch_json(
            url,
            referer=f"{self.base_url}/en/search?q={query}",
            extra_headers={
                "X-Requested-With": "XMLHttpRequest",
                "Origin": self.base_url,
            },
        )
        if not isinstance(data, dict) or "products" not in data:
            raise FetchError(url, "unexpected search API payload")
        return self.parse_api_products(data)

    def parse_api_products(self, data: Dict[str, Any]) -> List[RawItem]:
        """Map search API products to raw items."""
        items = []
        for product in data.get("products") or []:
            title = (product.get("displayName") or "").strip()
            if not title:
                continue

            price = product.get("currentPrice")
            product_url = product.get("productUrl") or ""
            items.append(
                RawItem(
                    title=title,
                    price_text="" if price is None else str(price),
                    url=normalize_url(product_url, self.base_url) if product_url else "",
                    in_stock=product.get("availabilityStatus", "IN_STOCK") != "OUT_OF_STOCK",
                )
            )
        return items
