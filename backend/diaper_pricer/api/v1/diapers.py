"""Diaper listing API endpoints."""

from typing import Literal, Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from diaper_pricer.config import settings
from diaper_pricer.dependencies import get_db, get_orchestrator
from diaper_pricer.schemas import ApiResponse, CatalogMeta, ListingResponse, PriceHistoryPoint
from diaper_pricer.scrapers.orchestrator import ScrapeOrchestrator
from diaper_pricer.scrapers.scheduler import refresh_if_stale
from diaper_pricer.services.catalog_service import CatalogService, ListingFilters, ListingSort
from diaper_pricer.services.scrape_log_service import ScrapeLogService, is_stale

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("", response_model=ApiResponse)
async def list_diapers(
    background_tasks: BackgroundTasks,
    brand: Optional[str] = Query(None, description="Exact brand, or 'all'"),
    size: Optional[str] = Query(None, description="Exact size, or 'all'"),
    retailer: Optional[str] = Query(None, description="Exact retailer name, or 'all'"),
    sort_by: Literal["price_per_unit", "price", "brand", "updated"] = Query(
        "price_per_unit", description="Sort field"
    ),
    order: Literal["asc", "desc"] = Query("asc", description="Sort direction"),
    db: AsyncSession = Depends(get_db),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    """List in-stock diaper listings, filtered and sorted.

    Always answers from the stored catalog. When the last successful scrape
    is older than the staleness interval, a refresh is queued to run after
    the response is sent.
    """
    service = CatalogService(db)
    listings = await service.query_listings(
        ListingFilters(brand=brand, size=size, retailer=retailer),
        ListingSort(field=sort_by, direction=order),
    )

    last_run = await ScrapeLogService(db).last_successful_run()
    refresh = is_stale(last_run, settings.STALENESS_HOURS) and not orchestrator.is_running
    if refresh:
        logger.info("stale_catalog_refresh_queued", last_successful_run=last_run.isoformat() if last_run else None)
        background_tasks.add_task(refresh_if_stale, orchestrator)

    return ApiResponse(
        status="success",
        data=[ListingResponse.model_validate(listing) for listing in listings],
        meta=CatalogMeta(total=len(listings), last_successful_run=last_run, refresh_scheduled=refresh),
    )


@router.get("/brands", response_model=ApiResponse)
async def list_brands(db: AsyncSession = Depends(get_db)):
    """Distinct brands in the catalog, alphabetical."""
    return ApiResponse(status="success", data=await CatalogService(db).get_distinct_brands())


@router.get("/sizes", response_model=ApiResponse)
async def list_sizes(db: AsyncSession = Depends(get_db)):
    """Distinct sizes, numeric sizes first in numeric order."""
    return ApiResponse(status="success", data=await CatalogService(db).get_distinct_sizes())


@router.get("/retailers", response_model=ApiResponse)
async def list_retailers(db: AsyncSession = Depends(get_db)):
    """Distinct retailer names in the catalog."""
    return ApiResponse(status="success", data=await CatalogService(db).get_distinct_retailers())


@router.get("/{listing_id}", response_model=ApiResponse)
async def get_diaper(listing_id: UUID, db: AsyncSession = Depends(get_db)):
    """Get one listing by ID."""
    listing = await CatalogService(db).get_listing(listing_id)
    return ApiResponse(status="success", data=ListingResponse.model_validate(listing))


@router.get("/{listing_id}/history", response_model=ApiResponse)
async def get_price_history(
    listing_id: UUID,
    days: int = Query(30, ge=1, le=365, description="Number of days to look back"),
    db: AsyncSession = Depends(get_db),
):
    """Get price snapshots for a listing, oldest first."""
    history = await CatalogService(db).get_price_history(listing_id, days=days)
    return ApiResponse(
        status="success",
        data=[PriceHistoryPoint.model_validate(entry) for entry in history],
    )
