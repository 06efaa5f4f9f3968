"""Scraper system for collecting diaper prices from Canadian retailers.

This package provides:
- Base adapter class and the normalized ProductListing type
- Resilient fetcher shared by all adapters
- Utility modules for rate limiting, block detection and text normalization
- Factory for creating and managing adapter instances
- Orchestrator and staleness scheduler for scraping jobs
"""

from .base import (
    BaseRetailerAdapter,
    ProductListing,
    RawItem,
    SearchParams,
    dedupe_listings,
)
from .factory import AdapterFactory, adapter_factory, get_adapter_factory

__all__ = [
    # Base class
    "BaseRetailerAdapter",
    # Data structures
    "ProductListing",
    "RawItem",
    "SearchParams",
    "dedupe_listings",
    # Factory
    "AdapterFactory",
    "adapter_factory",
    "get_adapter_factory",
]
