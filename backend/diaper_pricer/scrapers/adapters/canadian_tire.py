"""Canadian Tire search adapter."""

from typing import List
from urllib.parse import quote

from diaper_pricer.scrapers.base import BaseRetailerAdapter


class CanadianTireAdapter(BaseRetailerAdapter):
    """canadiantire.ca search adapter."""

    retailer_key = "canadian_tire"
    retailer_name = "Canadian Tire"
    base_url = "https://www.canadiantire.ca"

    CARD_SELECTORS = [".product-tile", ".nl-product-card"]
    TITLE_SELECTORS = [".product-name", ".nl-product-card__title"]
    PRICE_SELECTORS = [".price", ".nl-price--total"]
    LINK_SELECTORS = ["a.product-link[href]", "a[href]"]

    def build_queries(self, brand: str, size: str) -> List[str]:
        return [f"{brand} diapers size {size}"]

    def build_search_urls(self, query: str) -> List[str]:
        return [f"{self.base_url}/en/search-results.html?q={quote(query)}"]
