"""Shoppers Drug Mart search adapter."""

from typing import List
from urllib.parse import quote

from diaper_pricer.scrapers.base import BaseRetailerAdapter


class ShoppersAdapter(BaseRetailerAdapter):
    """shop.shoppersdrugmart.ca search adapter."""

    retailer_key = "shoppers"
    retailer_name = "Shoppers Drug Mart"
    base_url = "https://shop.shoppersdrugmart.ca"

    CARD_SELECTORS = [".product-card", ".product-tile", ".search-result-item", ".product-item"]
    TITLE_SELECTORS = [".product-card__title", ".product-title", ".item-name", "h3", "h4"]
    PRICE_SELECTORS = [".price__value", ".product-price", ".current-price", ".sale-price"]
    LINK_SELECTORS = ["a[href]", ".product-link[href]", ".item-link[href]"]

    def build_search_urls(self, query: str) -> List[str]:
        search = f"{self.base_url}/en/search?q={quote(query)}"
        return [
            search,
            f"{search}&category=baby",
            f"{search}&category=health-wellness",
            f"{search}&sort=relevance",
            f"{search}&sort=price-asc",
        ]
