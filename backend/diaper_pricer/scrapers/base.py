"""Retailer adapter interface and shared listing types.

Every retailer adapter inherits from BaseRetailerAdapter and supplies its
search URLs and markup selectors. The fetcher is injected, so adapters hold
no transport state of their own.
"""

import asyncio
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

import structlog
from bs4 import BeautifulSoup

from diaper_pricer.config import settings
from diaper_pricer.core.exceptions import BlockedResponseError, FetchError
from diaper_pricer.models.base import utcnow
from diaper_pricer.scrapers.fetcher import ResilientFetcher
from diaper_pricer.scrapers.utils.count_extractor import (
    extract_count,
    extract_product_line,
    extract_sizes,
)
from diaper_pricer.scrapers.utils.normalizer import (
    DiaperClassifier,
    PriceNormalizer,
    normalize_url,
    price_per_unit,
)

logger = structlog.get_logger(__name__)


@dataclass
class SearchParams:
    """Brand x size combinations to search for."""

    brands: List[str]
    sizes: List[str]

    @classmethod
    def defaults(cls) -> "SearchParams":
        return cls(brands=settings.get_default_brands(), sizes=settings.get_default_sizes())


@dataclass
class RawItem:
    """Product card as read from a retailer page, before validation."""

    title: str
    price_text: str = ""
    url: str = ""
    in_stock: bool = True


@dataclass
class ProductListing:
    """Normalized listing returned by all adapters."""

    brand: str
    product_type: str
    size: str
    pack_count: int
    retailer: str
    total_price: Decimal
    source_url: str = ""
    in_stock: bool = True
    last_fetched_at: datetime = field(default_factory=utcnow)
    price_per_unit: Decimal = field(init=False)

    def __post_init__(self):
        """Validate data and derive the per-unit price."""
        if not self.brand:
            raise ValueError("brand is required")
        if not self.size:
            raise ValueError("size is required")
        if not self.retailer:
            raise ValueError("retailer is required")
        if self.pack_count is None or self.pack_count <= 0:
            raise ValueError("pack_count must be a positive integer")
        if self.total_price is None or self.total_price <= 0:
            raise ValueError("total_price must be a positive Decimal")
        self.total_price = Decimal(self.total_price)
        self.price_per_unit = price_per_unit(self.total_price, self.pack_count)

    @property
    def natural_key(self) -> Tuple[str, str, str, str]:
        return (self.brand, self.product_type, self.size, self.retailer)


def dedupe_listings(listings: Sequence[ProductListing]) -> List[ProductListing]:
    """Collapse listings sharing a natural key, keeping the cheapest per unit.

    First-seen order of keys is preserved.
    """
    best: Dict[Tuple[str, str, str, str], ProductListing] = {}
    for listing in listings:
        current = best.get(listing.natural_key)
        if current is None or listing.price_per_unit < current.price_per_unit:
            best[listing.natural_key] = listing
    return list(best.values())


class BaseRetailerAdapter(ABC):
    """Abstract base class for retailer adapters.

    search_diapers() walks brand x size combinations and, for each, tries
    query phrasings x URL variants in order until enough valid listings are
    found. Failures on a variant are logged and the next variant is tried.
    Nothing raised inside a run escapes search_diapers().

    Subclasses set the class attributes and implement build_search_urls().
    HTML retailers only need the selector lists; others override fetch_items().
    """

    retailer_key: str = ""  # Registry key (e.g., "amazon")
    retailer_name: str = ""  # Persisted retailer name (e.g., "Amazon.ca")
    base_url: str = ""
    uses_browser: bool = False  # Needs a BrowserManager instead of plain HTTP

    # Tried in order; the first selector that yields parsable cards wins
    CARD_SELECTORS: List[str] = []
    TITLE_SELECTORS: List[str] = []
    PRICE_SELECTORS: List[str] = []
    LINK_SELECTORS: List[str] = ["a[href]"]
    OUT_OF_STOCK_MARKERS: List[str] = ["out of stock", "sold out", "unavailable", "not available online"]

    def __init__(
        self,
        fetcher: ResilientFetcher,
        *,
        min_products: Optional[int] = None,
        delay_range: Optional[Tuple[float, float]] = None,
        max_items_per_page: Optional[int] = None,
    ):
        """Initialize the adapter.

        Args:
            fetcher: Shared fetch resilience layer
            min_products: Valid listings that end the search for a combination
            delay_range: (min, max) seconds between requests
            max_items_per_page: Cards considered per results page
        """
        self.fetcher = fetcher
        self.min_products = (
            min_products if min_products is not None else settings.MIN_PRODUCTS_PER_COMBINATION
        )
        self.delay_range = delay_range or (
            settings.REQUEST_DELAY_MIN_SECONDS,
            settings.REQUEST_DELAY_MAX_SECONDS,
        )
        self.max_items_per_page = max_items_per_page or settings.MAX_ITEMS_PER_PAGE
        self.logger = logger.bind(retailer=self.retailer_key)

        # Populated per run, read by the orchestrator for the session log
        self.last_error: Optional[str] = None
        self.run_stats: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # Retailer-specific hooks
    # ------------------------------------------------------------------

    def build_queries(self, brand: str, size: str) -> List[str]:
        """Search phrasings for one combination, most specific first."""
        return [
            f"{brand} diapers size {size}",
            f"{brand} baby diapers {size}",
            f"{brand} diaper size {size}",
        ]

    @abstractmethod
    def build_search_urls(self, query: str) -> List[str]:
        """Candidate search URLs for one query, in the order to try them."""

    async def fetch_items(self, url: str) -> List[RawItem]:
        """Fetch one results page and parse its product cards."""
        result = await self.fetcher.fetch(url, referer=self.base_url or None)
        return self.parse_items(result.body)

    def parse_items(self, html: str) -> List[RawItem]:
        """Parse product cards using the first selector that yields items."""
        soup = BeautifulSoup(html, "html.parser")

        for selector in self.CARD_SELECTORS:
            cards = soup.select(selector)
            if not cards:
                continue

            items = []
            for card in cards:
                item = self._parse_card(card)
                if item:
                    items.append(item)

            if items:
                self.logger.debug("card_selector_matched", selector=selector, cards=len(cards), items=len(items))
                return items

        return []

    # ------------------------------------------------------------------
    # Card parsing helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _first_text(card, selectors: Sequence[str]) -> str:
        for selector in selectors:
            elem = card.select_one(selector)
            if elem:
                text = elem.get_text(" ", strip=True)
                if text:
                    return text
        return ""

    def _extract_title(self, card) -> str:
        return self._first_text(card, self.TITLE_SELECTORS)

    def _extract_price_text(self, card) -> str:
        return self._first_text(card, self.PRICE_SELECTORS)

    def _extract_url(self, card) -> str:
        if card.name == "a" and card.get("href"):
            return normalize_url(card["href"], self.base_url)
        for selector in self.LINK_SELECTORS:
            elem = card.select_one(selector)
            if elem and elem.get("href"):
                return normalize_url(elem["href"], self.base_url)
        return ""

    def _extract_in_stock(self, card) -> bool:
        text = card.get_text(" ", strip=True).lower()
        return not any(marker in text for marker in self.OUT_OF_STOCK_MARKERS)

    def _parse_card(self, card) -> Optional[RawItem]:
        title = self._extract_title(card)
        if not title:
            return None
        return RawItem(
            title=title,
            price_text=self._extract_price_text(card),
            url=self._extract_url(card),
            in_stock=self._extract_in_stock(card),
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def build_listing(self, raw: RawItem, brand: str, size: str, fallback_url: str = "") -> Optional[ProductListing]:
        """Turn a raw card into a listing, or None if it must be skipped.

        A card is kept only if it is a diaper of the requested brand, states
        no conflicting size, has a price, and yields a pack count.
        """
        if not DiaperClassifier.is_diaper_product(raw.title, brand):
            return None

        mentioned = extract_sizes(raw.title)
        if mentioned and size.lower() not in mentioned:
            self._discard(raw, "size_mismatch")
            return None

        price = PriceNormalizer.clean_price_string(raw.price_text)
        if price is None:
            self._discard(raw, "no_price")
            return None

        count = extract_count(raw.title)
        if count is None:
            self._discard(raw, "indeterminate_count")
            return None

        return ProductListing(
            brand=brand,
            product_type=extract_product_line(raw.title, brand),
            size=size,
            pack_count=count,
            retailer=self.retailer_name,
            total_price=price,
            source_url=raw.url or fallback_url,
            in_stock=raw.in_stock,
        )

    def _discard(self, raw: RawItem, reason: str) -> None:
        self.run_stats["discarded"] = self.run_stats.get("discarded", 0) + 1
        self.logger.info("listing_discarded", reason=reason, title=raw.title[:80])

    # ------------------------------------------------------------------
    # Search loop
    # ------------------------------------------------------------------

    async def _pause(self, variants_tried: int) -> None:
        """Randomized delay that grows with the number of variants tried."""
        low, high = self.delay_range
        if high <= 0:
            return
        scale = min(1.0 + 0.5 * max(variants_tried - 1, 0), 3.0)
        await asyncio.sleep(random.uniform(low, high) * scale)

    def _bump(self, key: str) -> None:
        self.run_stats[key] = self.run_stats.get(key, 0) + 1

    async def _search_combination(self, brand: str, size: str) -> List[ProductListing]:
        found: List[ProductListing] = []
        variants_tried = 0

        for query in self.build_queries(brand, size):
            for url in self.build_search_urls(query):
                if variants_tried:
                    await self._pause(variants_tried)
                variants_tried += 1
                self._bump("variants_tried")

                try:
                    raw_items = await self.fetch_items(url)
                except BlockedResponseError as e:
                    self._bump("variants_blocked")
                    self.logger.warning("variant_blocked", url=url, marker=e.marker)
                    continue
                except FetchError as e:
                    self._bump("variants_failed")
                    self.logger.warning("variant_fetch_failed", url=url, error=e.message)
                    continue
                except Exception as e:
                    self._bump("variants_failed")
                    self.logger.warning("variant_parse_failed", url=url, error=str(e), exc_info=True)
                    continue

                for raw in raw_items[: self.max_items_per_page]:
                    listing = self.build_listing(raw, brand, size, fallback_url=url)
                    if listing:
                        found.append(listing)

                if len(found) >= self.min_products:
                    self.logger.info(
                        "combination_satisfied",
                        brand=brand,
                        size=size,
                        found=len(found),
                        variants_tried=variants_tried,
                    )
                    return found

        self.logger.info("combination_exhausted", brand=brand, size=size, found=len(found), variants_tried=variants_tried)
        return found

    async def search_diapers(self, params: SearchParams) -> List[ProductListing]:
        """Search this retailer for every brand x size combination.

        Args:
            params: Brands and sizes to search

        Returns:
            Deduplicated listings; empty if the run failed outright
        """
        self.last_error = None
        self.run_stats = {}
        results: List[ProductListing] = []

        self.logger.info("retailer_search_started", brands=params.brands, sizes=params.sizes)
        try:
            first = True
            for brand in params.brands:
                for size in params.sizes:
                    if not first:
                        await self._pause(1)
                    first = False
                    results.extend(await self._search_combination(brand, size))
        except Exception as e:
            self.last_error = f"{type(e).__name__}: {e}"
            self.logger.error("retailer_search_failed", error=str(e), exc_info=True)
            return []

        tried = self.run_stats.get("variants_tried", 0)
        failed = self.run_stats.get("variants_failed", 0) + self.run_stats.get("variants_blocked", 0)
        if tried and failed == tried:
            self.last_error = (
                f"all {tried} URL variants failed "
                f"({self.run_stats.get('variants_blocked', 0)} blocked)"
            )

        listings = dedupe_listings(results)
        self.logger.info("retailer_search_completed", listings=len(listings), **self.run_stats)
        return listings

    async def close(self) -> None:
        """Release adapter-held resources. The shared fetcher is closed by its owner."""
