"""FastAPI dependency injection providers."""

from typing import Optional

from fastapi import HTTPException, Request, status

from diaper_pricer.db.utils import get_db
from diaper_pricer.scrapers.factory import AdapterFactory
from diaper_pricer.scrapers.orchestrator import ScrapeOrchestrator
from diaper_pricer.scrapers.scheduler import ScrapeScheduler

__all__ = ["get_db", "get_orchestrator", "get_adapter_factory_dep", "get_scheduler"]


def get_orchestrator(request: Request) -> ScrapeOrchestrator:
    """Return the orchestrator created during application startup.

    Raises 503 if the scraping pipeline was not initialized.
    """
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Scraping pipeline is not initialized",
        )
    return orchestrator


def get_adapter_factory_dep(request: Request) -> AdapterFactory:
    factory = getattr(request.app.state, "adapter_factory", None)
    if factory is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Adapter registry is not initialized",
        )
    return factory


def get_scheduler(request: Request) -> Optional[ScrapeScheduler]:
    """Return the running scheduler, or None when scheduling is disabled."""
    return getattr(request.app.state, "scheduler", None)
