"""Scrape session log service.

The newest successful session doubles as the persisted "last successful
run" timestamp that drives the staleness policy, so no process-local state
is needed to decide whether the catalog should be refreshed.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from diaper_pricer.models.base import as_utc
from diaper_pricer.models.scrape_log import ScrapeSessionLog

logger = structlog.get_logger(__name__)


def is_stale(last_run: Optional[datetime], staleness_hours: float, now: Optional[datetime] = None) -> bool:
    """Check whether a last successful run is older than the interval.

    A catalog that was never scraped successfully is stale.
    """
    if last_run is None:
        return True
    now = now or datetime.now(timezone.utc)
    return now - last_run > timedelta(hours=staleness_hours)


class ScrapeLogService:
    """Service for reading and writing per-retailer scrape session logs."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = logger.bind(service="scrape_log_service")

    async def record_session(
        self,
        retailer: str,
        started_at: datetime,
        completed_at: datetime,
        items_found: int,
        success: bool,
        error_message: Optional[str] = None,
    ) -> ScrapeSessionLog:
        """Write one completed session row and commit.

        Args:
            retailer: Persisted retailer name
            started_at: When the adapter run started
            completed_at: When it settled
            items_found: Listings the adapter returned
            success: Whether the run is counted as successful
            error_message: Failure detail, if any

        Returns:
            The stored ScrapeSessionLog
        """
        entry = ScrapeSessionLog(
            retailer=retailer,
            started_at=started_at,
            completed_at=completed_at,
            duration_ms=int((completed_at - started_at).total_seconds() * 1000),
            items_found=items_found,
            success=success,
            error_message=error_message[:2000] if error_message else None,
        )
        self.db.add(entry)
        await self.db.commit()

        self.logger.info(
            "scrape_session_recorded",
            retailer=retailer,
            success=success,
            items_found=items_found,
            duration_ms=entry.duration_ms,
        )
        return entry

    async def last_successful_run(self) -> Optional[datetime]:
        """Completion time of the newest successful session, or None."""
        result = await self.db.execute(
            select(func.max(ScrapeSessionLog.completed_at)).where(ScrapeSessionLog.success.is_(True))
        )
        return as_utc(result.scalar_one_or_none())

    async def is_catalog_stale(self, staleness_hours: float, now: Optional[datetime] = None) -> bool:
        return is_stale(await self.last_successful_run(), staleness_hours, now=now)

    async def recent_logs(self, limit: int = 50, retailer: Optional[str] = None) -> List[ScrapeSessionLog]:
        """Newest session logs first, optionally for one retailer."""
        query = select(ScrapeSessionLog)
        if retailer:
            query = query.where(ScrapeSessionLog.retailer == retailer)
        query = query.order_by(ScrapeSessionLog.completed_at.desc()).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())
