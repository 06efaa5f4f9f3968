"""API v1 router -- aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from diaper_pricer.api.v1 import diapers, health, scraping

api_v1_router = APIRouter()

api_v1_router.include_router(health.router, tags=["health"])
api_v1_router.include_router(diapers.router, prefix="/diapers", tags=["diapers"])
api_v1_router.include_router(scraping.router, prefix="/scrape", tags=["scraping"])
