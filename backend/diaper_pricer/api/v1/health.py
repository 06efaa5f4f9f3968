"""Health check endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from diaper_pricer.db.utils import check_database_health
from diaper_pricer.dependencies import get_db, get_scheduler
from diaper_pricer.schemas import HealthCheckResponse
from diaper_pricer.scrapers.scheduler import ScrapeScheduler
from diaper_pricer.services.scrape_log_service import ScrapeLogService

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    scheduler: Optional[ScrapeScheduler] = Depends(get_scheduler),
):
    """Return service health status.

    Checks database connectivity and reports the scheduler state and the
    time of the last successful scrape.
    """
    services = {}

    db_health = await check_database_health(db)
    db_status = "ok" if db_health["healthy"] else f"error: {db_health.get('error')}"
    services["database"] = db_status

    last_run = None
    if db_health["healthy"]:
        last_run = await ScrapeLogService(db).last_successful_run()

    if scheduler is None:
        scheduler_status = "disabled"
    else:
        scheduler_status = "ok" if scheduler.is_running() else "stopped"
    services["scheduler"] = scheduler_status

    overall_status = "ok" if db_status == "ok" else "degraded"

    return HealthCheckResponse(
        status=overall_status,
        database=db_status,
        scheduler=scheduler_status,
        last_successful_run=last_run,
        services=services,
    )
