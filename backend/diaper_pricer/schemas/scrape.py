"""Scrape job request/response schemas."""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ScrapeRequest(BaseModel):
    """Manual scrape trigger. Omitted fields fall back to configured defaults."""

    brands: Optional[List[str]] = Field(None, min_length=1)
    sizes: Optional[List[str]] = Field(None, min_length=1)
    retailers: Optional[List[str]] = Field(None, description="Retailer keys, e.g. ['walmart', 'costco']")


class RetailerRunSummary(BaseModel):
    retailer: str
    success: bool
    items_found: int
    upserted: int = 0
    error: Optional[str] = None


class ScrapeJobSummary(BaseModel):
    """Outcome of a synchronous scrape run."""

    total_listings: int
    retailers: List[RetailerRunSummary]


class ScrapeLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    retailer: str
    started_at: datetime
    completed_at: datetime
    duration_ms: Optional[int] = None
    items_found: int
    success: bool
    error_message: Optional[str] = None


class RetailerInfo(BaseModel):
    key: str
    name: str


class SchedulerStatus(BaseModel):
    running: bool
    job_running: bool
    jobs: Dict[str, Dict[str, Optional[str]]] = {}
