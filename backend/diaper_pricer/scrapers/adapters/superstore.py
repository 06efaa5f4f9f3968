"""Real Canadian Superstore search adapter."""

from typing import List
from urllib.parse import quote

from diaper_pricer.scrapers.base import BaseRetailerAdapter


class SuperstoreAdapter(BaseRetailerAdapter):
    """realcanadiansuperstore.ca search adapter."""

    retailer_key = "superstore"
    retailer_name = "Real Canadian Superstore"
    base_url = "https://www.realcanadiansuperstore.ca"

    CARD_SELECTORS = [".product-tile"]
    TITLE_SELECTORS = [".product-name__item--name", ".product-name"]
    PRICE_SELECTORS = [".price__amount", ".selling-price-list__item__price"]
    LINK_SELECTORS = ["a.product-tile__thumbnail__link[href]", "a[href]"]

    def build_queries(self, brand: str, size: str) -> List[str]:
        # Site search ignores the extra phrasings; one query per combination
        return [f"{brand} diapers size {size}"]

    def build_search_urls(self, query: str) -> List[str]:
        return [f"{self.base_url}/en/search?search-bar={quote(query)}"]
