"""APScheduler-based staleness scheduler.

A periodic check re-runs the scraping job only when the newest successful
scrape session is older than the staleness interval. The timestamp is read
from scrape_logs, so several processes share one view of freshness.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from diaper_pricer.config import settings
from diaper_pricer.scrapers.base import SearchParams
from diaper_pricer.scrapers.orchestrator import ScrapeOrchestrator
from diaper_pricer.services.scrape_log_service import ScrapeLogService

logger = structlog.get_logger(__name__)


JOB_ID = "refresh_catalog"


async def is_catalog_stale(
    session_factory: async_sessionmaker[AsyncSession],
    staleness_hours: float,
    now: Optional[datetime] = None,
) -> bool:
    """Check whether the last successful run is older than the interval.

    A catalog that was never scraped successfully is stale.
    """
    async with session_factory() as db:
        return await ScrapeLogService(db).is_catalog_stale(staleness_hours, now=now)


async def refresh_if_stale(
    orchestrator: ScrapeOrchestrator,
    params: Optional[SearchParams] = None,
    staleness_hours: Optional[float] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Run the scraping job if the catalog is stale.

    Overlapping callers never scrape twice: a caller that finds a job
    running returns at once, and staleness is re-read under the job lock.

    Args:
        orchestrator: Orchestrator to run
        params: Search parameters for the job
        staleness_hours: Override of STALENESS_HOURS
        now: Reference time

    Returns:
        True if a job was run
    """
    hours = staleness_hours if staleness_hours is not None else settings.STALENESS_HOURS
    return await orchestrator.run_if_stale(hours, params=params, now=now)


class ScrapeScheduler:
    """Periodically refreshes the catalog when it goes stale.

    This scheduler:
    - Checks staleness on a fixed interval, starting immediately
    - Never overlaps two refreshes (max_instances=1, coalesced misfires)
    - Logs and swallows job errors so the schedule keeps running
    """

    def __init__(
        self,
        orchestrator: ScrapeOrchestrator,
        check_minutes: Optional[int] = None,
        staleness_hours: Optional[float] = None,
    ):
        """Initialize the scheduler.

        Args:
            orchestrator: Orchestrator that runs the job
            check_minutes: Minutes between staleness checks
            staleness_hours: Age after which the catalog is refreshed
        """
        self.orchestrator = orchestrator
        self.check_minutes = check_minutes or settings.SCHEDULER_CHECK_MINUTES
        self.staleness_hours = staleness_hours if staleness_hours is not None else settings.STALENESS_HOURS
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.logger = logger.bind(service="scrape_scheduler")

    def start(self) -> None:
        """Start the scheduler and register the staleness check job."""
        if self.scheduler.running:
            self.logger.warning("scheduler_already_running")
            return

        self.scheduler.add_job(
            func=self._refresh_wrapper,
            trigger=IntervalTrigger(minutes=self.check_minutes, timezone="UTC"),
            id=JOB_ID,
            name="Refresh stale diaper catalog",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(timezone.utc),
        )
        self.scheduler.start()
        self.logger.info(
            "scheduler_started",
            check_minutes=self.check_minutes,
            staleness_hours=self.staleness_hours,
        )

    def stop(self) -> None:
        """Stop the scheduler without waiting for a running refresh.

        AsyncIOScheduler applies the shutdown on the next event loop
        iteration, so `is_running()` flips only after control returns to it.
        """
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            self.logger.info("scheduler_stopped")
        else:
            self.logger.warning("scheduler_not_running")

    async def _refresh_wrapper(self) -> None:
        """Wrapper called by APScheduler; catches all exceptions."""
        try:
            await refresh_if_stale(self.orchestrator, staleness_hours=self.staleness_hours)
        except Exception as e:
            self.logger.error("scheduled_refresh_failed", error=str(e), exc_info=True)

    def get_jobs_status(self) -> dict:
        """Get status of scheduled jobs keyed by job id."""
        jobs = {}
        for job in self.scheduler.get_jobs():
            jobs[job.id] = {
                "job_id": job.id,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger),
            }
        return jobs

    def is_running(self) -> bool:
        return self.scheduler.running
