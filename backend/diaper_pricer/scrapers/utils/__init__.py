"""Scraper utilities: pacing, header rotation, block detection and normalization."""

from .rate_limiter import DomainRateLimiter, TokenBucket
from .user_agents import build_browser_headers, get_random_user_agent, USER_AGENTS
from .block_detection import BLOCK_MARKERS, detect_block
from .count_extractor import extract_count, extract_product_line, extract_sizes
from .normalizer import (
    DiaperClassifier,
    PriceNormalizer,
    normalize_url,
    price_per_unit,
)
from .retry import fetch_retrying, wait_jittered_backoff


__all__ = [
    # Rate limiting
    "DomainRateLimiter",
    "TokenBucket",
    # Header rotation
    "build_browser_headers",
    "get_random_user_agent",
    "USER_AGENTS",
    # Block detection
    "BLOCK_MARKERS",
    "detect_block",
    # Text heuristics
    "extract_count",
    "extract_product_line",
    "extract_sizes",
    # Normalization
    "DiaperClassifier",
    "PriceNormalizer",
    "normalize_url",
    "price_per_unit",
    # Retry
    "fetch_retrying",
    "wait_jittered_backoff",
]
