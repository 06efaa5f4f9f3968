"""Retailer-specific adapter implementations.

Each adapter module implements a class that inherits from
BaseRetailerAdapter and returns ProductListing objects.
"""

# HTTP adapters
from .amazon import AmazonAdapter
from .walmart import WalmartAdapter
from .costco import CostcoAdapter
from .shoppers import ShoppersAdapter
from .superstore import SuperstoreAdapter
from .canadian_tire import CanadianTireAdapter

# Browser adapters
from .well import WellAdapter

__all__ = [
    # HTTP adapters
    "AmazonAdapter",
    "WalmartAdapter",
    "CostcoAdapter",
    "ShoppersAdapter",
    "SuperstoreAdapter",
    "CanadianTireAdapter",
    # Browser adapters
    "WellAdapter",
]
