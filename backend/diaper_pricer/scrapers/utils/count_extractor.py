"""Pack-count and product-line heuristics over free-text product titles.

Retailers rarely expose pack size as structured data, so the count is read
out of the title. A listing whose count cannot be determined must be dropped
by the caller; these functions never invent a zero or placeholder count.
"""

import re
from typing import Dict, List, Optional, Pattern, Set, Tuple

# Plausible pack sizes for a pattern match
PATTERN_RANGE: Tuple[int, int] = (12, 300)

# Bare numbers are noisier (weights, model numbers), so the window is tighter
FALLBACK_RANGE: Tuple[int, int] = (20, 300)

# Units that disqualify a bare number from being a count
_NON_COUNT_UNITS = r"(?:lbs?\b|kgs?\b|pounds?\b|oz\b|months?\b|mos?\b|%|cm\b|mm\b|in\b|x\b)"

# Rejects a number followed by a unit, directly or via "+" or a range ("35+ lbs", "22-37 lbs")
_NOT_UNIT_TAIL = r"(?!\+?\s*(?:-\s*\d{1,3}\+?\s*)?" + _NON_COUNT_UNITS + ")"

# Ordered by priority: the first pattern that yields an in-range value wins
COUNT_PATTERNS: List[Tuple[str, Pattern[str]]] = [
    (
        "explicit",
        re.compile(
            r"(\d{1,4})\s*-?\s*(?:count|ct|pk|packs?|pieces|pcs)\b"
            r"|\bcount\s*[-:]?\s*(\d{1,4})\b",
            re.IGNORECASE,
        ),
    ),
    (
        "size_qualified",
        re.compile(
            r"\bsize\s+(?:\d{1,2}|n|nb|newborn|preemie)\s*[,:/]?\s*(\d{2,3})\b" + _NOT_UNIT_TAIL,
            re.IGNORECASE,
        ),
    ),
    ("parenthetical", re.compile(r"[(\[]\s*(\d{2,3})\s*[)\]]")),
    (
        "hyphenated",
        re.compile(r"\b\d{1,2}\s*-\s*(\d{2,3})\b" + _NOT_UNIT_TAIL, re.IGNORECASE),
    ),
    (
        "unit_noun",
        re.compile(r"(\d{2,3})\s*(?:baby\s+)?(?:diapers?|nappies|nappy|units)\b", re.IGNORECASE),
    ),
    ("container_of", re.compile(r"\b(?:box|case|pack|bag)\s+of\s+(\d{2,3})\b", re.IGNORECASE)),
    (
        "month_supply",
        re.compile(
            r"month(?:'?s)?\s+supply\s*[,:\-]?\s*(\d{2,3})\b"
            r"|(\d{2,3})\s*[,\-]?\s*(?:one\s+|1\s+)?month(?:'?s)?\s+supply",
            re.IGNORECASE,
        ),
    ),
    (
        "named_pack",
        re.compile(
            r"\b(?:giant|mega|super|jumbo|economy|family|value)\s+(?:plus\s+)?(?:pack|box)\s*[,:\-]?\s*(\d{2,3})\b",
            re.IGNORECASE,
        ),
    ),
]

_BARE_NUMBER = re.compile(r"\b(\d{2,3})\b")
# Also covers open-ended weights ("35+ lbs") and range upper bounds ("22-37 lbs")
_UNIT_AFTER = re.compile(r"\+?\s*(?:-\s*\d{1,3}\+?\s*)?" + _NON_COUNT_UNITS, re.IGNORECASE)
_SIZE_BEFORE = re.compile(r"size\s*$", re.IGNORECASE)

# Last-resort defaults keyed by pack naming conventions
KEYWORD_DEFAULT_COUNTS: List[Tuple[Tuple[str, ...], int]] = [
    (("mega", "family"), 144),
    (("jumbo", "giant"), 120),
    (("super", "economy"), 96),
    (("newborn", "preemie"), 84),
]

# Ordered sub-lines per brand; earlier entries win on overlap
BRAND_PRODUCT_LINES: Dict[str, List[Tuple[str, str]]] = {
    "pampers": [
        ("swaddlers", "Swaddlers"),
        ("baby dry", "Baby Dry"),
        ("cruisers 360", "Cruisers 360"),
        ("cruisers", "Cruisers"),
        ("pure protection", "Pure Protection"),
        ("pure", "Pure"),
    ],
    "huggies": [
        ("little snugglers", "Little Snugglers"),
        ("snug & dry", "Snug & Dry"),
        ("snug and dry", "Snug & Dry"),
        ("little movers", "Little Movers"),
        ("special delivery", "Special Delivery"),
        ("overnites", "Overnites"),
        ("skin essentials", "Skin Essentials"),
    ],
    "kirkland": [
        ("signature", "Signature"),
    ],
    "parents choice": [
        ("premium", "Premium"),
    ],
    "life brand": [
        ("ultra dry", "Ultra Dry"),
        ("premium", "Premium"),
    ],
    "seventh generation": [
        ("free & clear", "Free & Clear"),
        ("free and clear", "Free & Clear"),
    ],
    "honest": [
        ("club box", "Club Box"),
    ],
    "presidents choice": [
        ("ultra soft", "Ultra Soft"),
    ],
}

DEFAULT_PRODUCT_LINE = "Regular"

_SIZE_MENTION = re.compile(
    r"\bsize\s+(\d{1,2}|n|nb|newborn|preemie)(?:\s*(?:-|/|&|and|to)\s*(\d{1,2}))?\b",
    re.IGNORECASE,
)


def normalize_text(value: str) -> str:
    """Lowercase, drop apostrophes and collapse whitespace for matching."""
    value = value.lower().replace("’", "").replace("'", "")
    return " ".join(value.split())


def _in_range(value: int, bounds: Tuple[int, int]) -> bool:
    return bounds[0] <= value <= bounds[1]


def _pattern_count(title: str) -> Optional[int]:
    for _name, pattern in COUNT_PATTERNS:
        for match in pattern.finditer(title):
            raw = next((g for g in match.groups() if g), None)
            if raw is None:
                continue
            value = int(raw)
            if _in_range(value, PATTERN_RANGE):
                return value
    return None


def _fallback_count(title: str) -> Optional[int]:
    for match in _BARE_NUMBER.finditer(title):
        if _UNIT_AFTER.match(title, match.end()):
            continue
        if _SIZE_BEFORE.search(title[: match.start()]):
            continue
        value = int(match.group(1))
        if _in_range(value, FALLBACK_RANGE):
            return value
    return None


def _keyword_count(title: str) -> Optional[int]:
    lowered = title.lower()
    for keywords, count in KEYWORD_DEFAULT_COUNTS:
        if any(re.search(rf"\b{kw}\b", lowered) for kw in keywords):
            return count
    return None


def extract_count(title: str) -> Optional[int]:
    """Infer the number of units in a pack from its title.

    Tries the ordered patterns first, then a scan of bare 2-3 digit numbers,
    then keyword defaults for named pack sizes.

    Args:
        title: Product title as shown by the retailer

    Returns:
        Pack count, or None when it cannot be determined
    """
    if not title:
        return None

    return _pattern_count(title) or _fallback_count(title) or _keyword_count(title)


def extract_product_line(title: str, brand: str) -> str:
    """Map a title to the brand's known product line.

    Args:
        title: Product title
        brand: Brand the listing was searched under

    Returns:
        Product line name, "Regular" when no known line matches
    """
    if not title or not brand:
        return DEFAULT_PRODUCT_LINE

    lines = BRAND_PRODUCT_LINES.get(normalize_text(brand), [])
    lowered = normalize_text(title)
    for keyword, line in lines:
        if keyword in lowered:
            return line
    return DEFAULT_PRODUCT_LINE


def extract_sizes(title: str) -> Set[str]:
    """Sizes a title explicitly mentions, e.g. "Size 3" or "Size 1-2"."""
    sizes: Set[str] = set()
    if not title:
        return sizes

    for match in _SIZE_MENTION.finditer(title):
        first, second = match.group(1).lower(), match.group(2)
        if first in ("n", "nb"):
            first = "newborn"
        sizes.add(first)
        if second and first.isdigit():
            for value in range(int(first), int(second) + 1):
                sizes.add(str(value))
    return sizes
