"""Diaper Pricer Backend -- FastAPI Application Entry Point.

Run with: cd backend && uvicorn diaper_pricer.main:app --reload --port 8000
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from diaper_pricer.api.v1.router import api_v1_router
from diaper_pricer.config import settings
from diaper_pricer.core.exceptions import DiaperPricerException, NotFoundError
from diaper_pricer.core.logging import configure_logging
from diaper_pricer.db.seed import seed_fallback_catalog
from diaper_pricer.db.session import async_session_factory, engine
from diaper_pricer.models import Base
from diaper_pricer.schemas import ErrorDetail, ErrorResponse
from diaper_pricer.scrapers.factory import get_adapter_factory
from diaper_pricer.scrapers.orchestrator import ScrapeOrchestrator
from diaper_pricer.scrapers.register_adapters import register_all_adapters
from diaper_pricer.scrapers.scheduler import ScrapeScheduler

configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    # Startup
    logger.info("api_starting", environment=settings.ENVIRONMENT, debug=settings.DEBUG)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_tables_ready")

        if settings.SEED_FALLBACK_CATALOG:
            async with async_session_factory() as session:
                await seed_fallback_catalog(session)
    except Exception as e:
        logger.error("database_init_failed", error=str(e), exc_info=True)

    factory = register_all_adapters(get_adapter_factory())
    adapters = factory.create_adapters(settings.get_enabled_retailers())
    orchestrator = ScrapeOrchestrator(
        async_session_factory,
        adapters,
        job_deadline_seconds=settings.JOB_DEADLINE_SECONDS,
    )
    app.state.adapter_factory = factory
    app.state.orchestrator = orchestrator
    app.state.scheduler = None

    # Start staleness scheduler (only outside tests)
    if settings.SCHEDULER_ENABLED and settings.ENVIRONMENT != "test":
        scheduler = ScrapeScheduler(orchestrator)
        scheduler.start()
        app.state.scheduler = scheduler
    else:
        logger.info("scheduler_disabled", environment=settings.ENVIRONMENT)

    yield

    # Shutdown
    logger.info("api_shutting_down")

    if app.state.scheduler:
        app.state.scheduler.stop()

    try:
        await factory.close()
    except Exception as e:
        logger.warning("adapter_factory_close_failed", error=str(e))

    await engine.dispose()


app = FastAPI(
    title="Diaper Pricer API",
    description="Canadian diaper price-per-unit comparison API",
    version="0.1.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DiaperPricerException)
async def diaper_pricer_exception_handler(request: Request, exc: DiaperPricerException):
    """Render application errors in the standard error envelope."""
    if isinstance(exc, NotFoundError):
        status_code, code = 404, "not_found"
    else:
        status_code, code = 500, "internal_error"
        logger.error("unhandled_application_error", path=request.url.path, error=exc.message)

    body = ErrorResponse(error=ErrorDetail(code=code, message=exc.message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Diaper Pricer API",
        "version": "0.1.0",
        "description": "Canadian diaper price-per-unit comparison",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
