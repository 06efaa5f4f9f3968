"""Price parsing, product classification and URL normalization."""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional
from urllib.parse import urljoin, urlparse, parse_qs, urlencode, urlunparse

import structlog

from diaper_pricer.scrapers.utils.count_extractor import normalize_text

logger = structlog.get_logger(__name__)


CENTS = Decimal("0.01")
UNIT_PRICE_PLACES = Decimal("0.0001")

# Words that identify a diaper listing
DIAPER_KEYWORDS = ["diaper", "diapers", "nappies", "nappy"]

# Adjacent categories that share brands and search results with diapers
EXCLUDED_KEYWORDS = ["wipes", "swim", "training pants", "pull-up", "pull up", "pullup"]


def price_per_unit(total_price: Decimal, pack_count: int) -> Decimal:
    """Total price divided by pack count, rounded to 4 decimal places.

    Args:
        total_price: Pack price
        pack_count: Units in the pack, must be positive

    Returns:
        Price per unit quantized to 0.0001
    """
    if pack_count <= 0:
        raise ValueError("pack_count must be positive")
    return (Decimal(total_price) / Decimal(pack_count)).quantize(UNIT_PRICE_PLACES, rounding=ROUND_HALF_UP)


class PriceNormalizer:
    """Price parsing for Canadian retailer markup.

    Handles English ("$1,234.56") and French-Canadian ("1 234,56 $") formats.
    """

    # First price-looking token: digits with optional thousand groups and cents
    _PRICE_TOKEN = re.compile(r"\d{1,3}(?:[,\s]\d{3})+(?:[.,]\d{1,2})?|\d+(?:[.,]\d{1,2})?")

    @staticmethod
    def clean_price_string(raw) -> Optional[Decimal]:
        """Parse a price string and extract its value in dollars.

        Handles various formats:
        - "$54.97" -> 54.97
        - "CAD 1,049.99" -> 1049.99
        - "54,97 $" -> 54.97
        - 54.97 (number from JSON) -> 54.97

        Args:
            raw: Raw price string or number

        Returns:
            Decimal price rounded to cents, or None if parsing fails
        """
        if raw is None:
            return None
        if isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool):
            raw = str(raw)
        if not isinstance(raw, str) or not raw.strip():
            return None

        match = PriceNormalizer._PRICE_TOKEN.search(raw)
        if not match:
            return None

        token = re.sub(r"\s", "", match.group(0))
        # "54,97" is a decimal comma; "1,049" is a thousands separator
        if "," in token and "." not in token and re.search(r",\d{1,2}$", token):
            token = token.replace(",", ".")
        else:
            token = token.replace(",", "")

        try:
            value = Decimal(token).quantize(CENTS, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            return None

        if value <= 0:
            return None
        return value

    @staticmethod
    def combine_whole_fraction(whole: str, fraction: str) -> Optional[Decimal]:
        """Join split price markup such as <span>54.</span><span>97</span>."""
        whole_digits = re.sub(r"[^\d]", "", whole or "")
        fraction_digits = re.sub(r"[^\d]", "", fraction or "") or "00"
        if not whole_digits:
            return None
        return PriceNormalizer.clean_price_string(f"{whole_digits}.{fraction_digits[:2]}")


class DiaperClassifier:
    """Keyword rules deciding whether a title is a diaper of a given brand."""

    @staticmethod
    def is_diaper_product(title: str, brand: str) -> bool:
        """Check brand, diaper keyword and excluded categories.

        Args:
            title: Product title
            brand: Brand being searched

        Returns:
            True if the title names the brand, reads as a diaper and is not
            wipes, swim diapers, training pants or pull-ups
        """
        if not title or not brand:
            return False

        lowered = normalize_text(title)
        if normalize_text(brand) not in lowered:
            return False

        if not any(keyword in lowered for keyword in DIAPER_KEYWORDS):
            return False

        return not any(keyword in lowered for keyword in EXCLUDED_KEYWORDS)


def normalize_url(url: str, base_url: Optional[str] = None) -> str:
    """Make a URL absolute and remove tracking parameters.

    Args:
        url: URL or site-relative path
        base_url: Retailer origin used to resolve relative paths

    Returns:
        Normalized URL
    """
    if not url:
        return url

    if base_url:
        url = urljoin(base_url, url)

    # Common tracking parameters to remove
    tracking_params = [
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_content",
        "utm_term",
        "ref",
        "ref_",
        "source",
        "fbclid",
        "gclid",
        "mc_cid",
        "mc_eid",
    ]

    parsed = urlparse(url)
    query_params = parse_qs(parsed.query)

    filtered_params = {
        k: v for k, v in query_params.items() if k not in tracking_params
    }

    new_query = urlencode(filtered_params, doseq=True)

    return urlunparse(
        (parsed.scheme, parsed.netloc, parsed.path, parsed.params, new_query, "")
    )
