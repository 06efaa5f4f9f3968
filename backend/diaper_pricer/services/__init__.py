"""Services module for business logic and data operations.

Services own data access for the listing catalog and the scrape session
logs. Scrapers and API routes go through them rather than the ORM directly.
"""

from diaper_pricer.services.catalog_service import (
    BatchUpsertResult,
    CatalogService,
    ListingFilters,
    ListingSort,
)
from diaper_pricer.services.scrape_log_service import ScrapeLogService

__all__ = [
    "BatchUpsertResult",
    "CatalogService",
    "ListingFilters",
    "ListingSort",
    "ScrapeLogService",
]
