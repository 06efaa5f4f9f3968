"""Scrape job API endpoints: manual trigger, session logs and status."""

from typing import Optional

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from diaper_pricer.config import settings
from diaper_pricer.dependencies import (
    get_adapter_factory_dep,
    get_db,
    get_orchestrator,
    get_scheduler,
)
from diaper_pricer.schemas import (
    ApiResponse,
    RetailerInfo,
    RetailerRunSummary,
    SchedulerStatus,
    ScrapeJobSummary,
    ScrapeLogResponse,
    ScrapeRequest,
)
from diaper_pricer.scrapers.base import SearchParams
from diaper_pricer.scrapers.factory import AdapterFactory
from diaper_pricer.scrapers.orchestrator import ScrapeOrchestrator
from diaper_pricer.scrapers.scheduler import ScrapeScheduler
from diaper_pricer.services.scrape_log_service import ScrapeLogService

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("", response_model=ApiResponse, status_code=status.HTTP_202_ACCEPTED)
async def trigger_scrape(
    request: ScrapeRequest,
    background_tasks: BackgroundTasks,
    wait: bool = Query(False, description="Run synchronously and return the job summary"),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
    factory: AdapterFactory = Depends(get_adapter_factory_dep),
):
    """Start a scraping job now, regardless of catalog staleness.

    Returns 409 if a job is already running.
    """
    if orchestrator.is_running:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A scraping job is already running")

    if request.retailers:
        enabled = {adapter.retailer_key for adapter in orchestrator.adapters}
        unknown = [key for key in request.retailers if not factory.has_adapter(key)]
        if unknown:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown retailers: {', '.join(unknown)}",
            )
        disabled = [key for key in request.retailers if key not in enabled]
        if disabled:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Retailers not enabled: {', '.join(disabled)}",
            )

    params = SearchParams(
        brands=request.brands or settings.get_default_brands(),
        sizes=request.sizes or settings.get_default_sizes(),
    )
    logger.info("manual_scrape_requested", brands=params.brands, sizes=params.sizes, retailers=request.retailers, wait=wait)

    if not wait:
        background_tasks.add_task(orchestrator.run_scraping_job, params, request.retailers)
        return ApiResponse(status="accepted", data={"brands": params.brands, "sizes": params.sizes})

    listings = await orchestrator.run_scraping_job(params, request.retailers)
    summary = ScrapeJobSummary(
        total_listings=len(listings),
        retailers=[
            RetailerRunSummary(
                retailer=r.retailer,
                success=r.success,
                items_found=len(r.listings),
                upserted=r.upserted,
                error=r.error,
            )
            for r in orchestrator.last_results
        ],
    )
    return ApiResponse(status="success", data=summary)


@router.get("/logs", response_model=ApiResponse)
async def list_scrape_logs(
    limit: int = Query(50, ge=1, le=500, description="Maximum rows"),
    retailer: Optional[str] = Query(None, description="Filter by retailer name"),
    db: AsyncSession = Depends(get_db),
):
    """Recent scrape session logs, newest first."""
    logs = await ScrapeLogService(db).recent_logs(limit=limit, retailer=retailer)
    return ApiResponse(status="success", data=[ScrapeLogResponse.model_validate(log) for log in logs])


@router.get("/retailers", response_model=ApiResponse)
async def list_registered_retailers(factory: AdapterFactory = Depends(get_adapter_factory_dep)):
    """Registered retailer adapters."""
    return ApiResponse(
        status="success",
        data=[RetailerInfo(key=key, name=name) for key, name in factory.get_retailer_names().items()],
    )


@router.get("/status", response_model=ApiResponse)
async def scrape_status(
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
    scheduler: Optional[ScrapeScheduler] = Depends(get_scheduler),
):
    """Scheduler state and whether a job is in progress."""
    return ApiResponse(
        status="success",
        data=SchedulerStatus(
            running=bool(scheduler and scheduler.is_running()),
            job_running=orchestrator.is_running,
            jobs=scheduler.get_jobs_status() if scheduler else {},
        ),
    )
