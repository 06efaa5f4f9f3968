"""Pydantic schemas for the diaper price API.

All request/response models are defined here for easy import.
"""

from diaper_pricer.schemas.common import ApiResponse, CatalogMeta, ErrorDetail, ErrorResponse
from diaper_pricer.schemas.health import HealthCheckResponse
from diaper_pricer.schemas.listing import ListingResponse, PriceHistoryPoint
from diaper_pricer.schemas.scrape import (
    RetailerInfo,
    RetailerRunSummary,
    SchedulerStatus,
    ScrapeJobSummary,
    ScrapeLogResponse,
    ScrapeRequest,
)

__all__ = [
    # Common
    "ApiResponse",
    "CatalogMeta",
    "ErrorDetail",
    "ErrorResponse",
    # Health
    "HealthCheckResponse",
    # Listings
    "ListingResponse",
    "PriceHistoryPoint",
    # Scraping
    "RetailerInfo",
    "RetailerRunSummary",
    "SchedulerStatus",
    "ScrapeJobSummary",
    "ScrapeLogResponse",
    "ScrapeRequest",
]
