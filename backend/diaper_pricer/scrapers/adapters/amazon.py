"""Amazon.ca search results adapter.

Parses the server-rendered search page. Amazon serves a robot check or a
"sorry" page to clients it dislikes; those surface as BlockedResponseError
from the fetcher and the next URL variant is tried.
"""

from typing import List, Optional
from urllib.parse import quote_plus

from diaper_pricer.scrapers.base import BaseRetailerAdapter, RawItem
from diaper_pricer.scrapers.utils.normalizer import PriceNormalizer


class AmazonAdapter(BaseRetailerAdapter):
    """Amazon.ca diaper search adapter."""

    retailer_key = "amazon"
    retailer_name = "Amazon.ca"
    base_url = "https://www.amazon.ca"

    CARD_SELECTORS = [
        '[data-component-type="s-search-result"]',
        ".s-result-item[data-asin]",
    ]
    TITLE_SELECTORS = [
        "h2 a span",
        "h2 span",
        ".a-size-base-plus.a-color-base.a-text-normal",
        ".a-size-medium.a-color-base.a-text-normal",
    ]
    PRICE_SELECTORS = [".a-price .a-offscreen"]
    LINK_SELECTORS = ["h2 a[href]", "a.a-link-normal[href]"]
    OUT_OF_STOCK_MARKERS = ["currently unavailable", "out of stock"]

    def build_search_urls(self, query: str) -> List[str]:
        q = quote_plus(query)
        search = f"{self.base_url}/s?k={q}"
        return [
            f"{search}&ref=nb_sb_noss",
            f"{search}&i=baby",
            f"{search}&i=baby-products&rh=n%3A2224207011",
            f"{search}&s=featured-rank",
            f"{search}&s=price-asc-rank",
        ]

    def _extract_price_text(self, card) -> str:
        price = super()._extract_price_text(card)
        if price:
            return price

        # Split rendering: <span class="a-price-whole">42.</span><span class="a-price-fraction">97</span>
        whole = card.select_one(".a-price-whole")
        if not whole:
            return ""
        fraction = card.select_one(".a-price-fraction")
        combined = PriceNormalizer.combine_whole_fraction(
            whole.get_text(strip=True),
            fraction.get_text(strip=True) if fraction else None,
        )
        return str(combined) if combined is not None else ""

    def _extract_url(self, card) -> str:
        asin = card.get("data-asin")
        if asin:
            return f"{self.base_url}/dp/{asin}"
        return super()._extract_url(card)

    def _parse_card(self, card) -> Optional[RawItem]:
        # Sponsored slots and separators carry an empty data-asin
        if card.has_attr("data-asin") and not card.get("data-asin"):
            return None
        return super()._parse_card(card)
