"""Health check schemas."""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel


class HealthCheckResponse(BaseModel):
    """Health check response schema."""

    status: str
    database: str
    scheduler: Optional[str] = None
    last_successful_run: Optional[datetime] = None
    services: Dict[str, str] = {}
