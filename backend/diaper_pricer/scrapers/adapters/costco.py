"""Costco Canada search adapter.

Costco reshuffles its tile markup often, so several container, title and
price selectors are tried in order.
"""

from typing import List
from urllib.parse import quote

from diaper_pricer.scrapers.base import BaseRetailerAdapter


class CostcoAdapter(BaseRetailerAdapter):
    """Costco.ca diaper search adapter."""

    retailer_key = "costco"
    retailer_name = "Costco Canada"
    base_url = "https://www.costco.ca"

    CARD_SELECTORS = [
        ".product-tile-set",
        ".product-tile",
        ".product-list-item",
        ".product-card",
        ".grid-item",
    ]
    TITLE_SELECTORS = [
        ".description",
        "a.product-link .description",
        ".product-title",
        ".product-name",
        "h2",
        ".item-title",
    ]
    PRICE_SELECTORS = [
        ".product-price-set .product-price-amount",
        ".product-price-amount",
        ".price",
        ".product-price",
        ".base-price",
        ".price-value",
    ]
    LINK_SELECTORS = ["a.product-link[href]", "a.product-name[href]", "a[href]"]

    def build_search_urls(self, query: str) -> List[str]:
        q = quote(query)
        return [
            f"{self.base_url}/en-ca/search?keyword={q}",
            f"{self.base_url}/en-ca/category/baby?keyword={q}",
            f"{self.base_url}/en-ca/category/diapers-wipes-training-pants?keyword={q}",
            f"{self.base_url}/en-ca/search?keyword={q}&sortBy=relevance",
            f"{self.base_url}/en-ca/search?keyword={q}&sortBy=price-asc",
        ]
