"""SQLAlchemy models for the diaper catalog.

All models are imported here so metadata.create_all sees every table.
"""

from diaper_pricer.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from diaper_pricer.models.listing import DiaperListing
from diaper_pricer.models.price_history import PriceHistoryEntry
from diaper_pricer.models.scrape_log import ScrapeSessionLog

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "DiaperListing",
    "PriceHistoryEntry",
    "ScrapeSessionLog",
]
