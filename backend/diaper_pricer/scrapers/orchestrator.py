"""Scrape orchestration.

Runs every adapter concurrently, isolates their failures from one another,
persists each adapter's listings as soon as it settles, and writes one
scrape_logs row per adapter per job.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from diaper_pricer.core.exceptions import ScraperError
from diaper_pricer.models.base import utcnow
from diaper_pricer.scrapers.base import BaseRetailerAdapter, ProductListing, SearchParams
from diaper_pricer.services.catalog_service import CatalogService
from diaper_pricer.services.scrape_log_service import ScrapeLogService

logger = structlog.get_logger(__name__)


@dataclass
class AdapterRunResult:
    """Settled outcome of one adapter within a job."""

    retailer: str
    listings: List[ProductListing] = field(default_factory=list)
    success: bool = False
    error: Optional[str] = None
    upserted: int = 0
    upsert_failed: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ScrapeOrchestrator:
    """Runs a scraping job across all configured retailer adapters.

    Each adapter runs in its own task with its own database session, so a
    hanging or failing retailer never blocks or aborts the others. Only one
    job runs at a time per orchestrator.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        adapters: Sequence[BaseRetailerAdapter],
        job_deadline_seconds: Optional[float] = None,
        persist: bool = True,
    ):
        """Initialize the orchestrator.

        Args:
            session_factory: Async session factory for persistence
            adapters: Adapters to run on every job
            job_deadline_seconds: Per-adapter time limit; None waits for the slowest
            persist: Write listings and session logs (False for dry runs)
        """
        self.session_factory = session_factory
        self.adapters = list(adapters)
        self.job_deadline_seconds = job_deadline_seconds
        self.persist = persist
        self.logger = logger.bind(service="scrape_orchestrator")
        self._lock = asyncio.Lock()
        self.last_results: List[AdapterRunResult] = []

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def run_scraping_job(
        self,
        params: Optional[SearchParams] = None,
        retailer_keys: Optional[Iterable[str]] = None,
    ) -> List[ProductListing]:
        """Run every adapter concurrently and return all listings found.

        Args:
            params: Brands and sizes to search (default: configured defaults)
            retailer_keys: Restrict the job to these adapters (default: all)

        Returns:
            Flattened listings from all adapters, in no particular order
        """
        async with self._lock:
            return await self._run_job(params, retailer_keys)

    async def run_if_stale(
        self,
        staleness_hours: float,
        params: Optional[SearchParams] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """Run the job only if the catalog is stale once the job lock is held.

        Staleness is read while the lock is held, so the decision and the run
        never interleave with another job. Returns at once if a job is running.

        Args:
            staleness_hours: Age after which the catalog is refreshed
            params: Brands and sizes to search
            now: Reference time

        Returns:
            True if a job was run
        """
        if self.is_running:
            self.logger.info("refresh_skipped", reason="job_already_running")
            return False

        async with self._lock:
            async with self.session_factory() as db:
                stale = await ScrapeLogService(db).is_catalog_stale(staleness_hours, now=now)
            if not stale:
                self.logger.debug("refresh_skipped", reason="catalog_fresh", staleness_hours=staleness_hours)
                return False

            self.logger.info("catalog_stale_refreshing", staleness_hours=staleness_hours)
            await self._run_job(params, None)
            return True

    async def _run_job(
        self,
        params: Optional[SearchParams],
        retailer_keys: Optional[Iterable[str]],
    ) -> List[ProductListing]:
        params = params or SearchParams.defaults()
        adapters = self.adapters
        if retailer_keys:
            wanted = set(retailer_keys)
            adapters = [a for a in self.adapters if a.retailer_key in wanted]

        started = utcnow()
        self.logger.info(
            "scrape_job_started",
            retailers=[a.retailer_name for a in adapters],
            brands=params.brands,
            sizes=params.sizes,
        )

        results = await asyncio.gather(*(self._run_adapter(adapter, params) for adapter in adapters))
        self.last_results = list(results)

        listings = [listing for result in results for listing in result.listings]
        self.logger.info(
            "scrape_job_completed",
            total_listings=len(listings),
            succeeded=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if not r.success),
            duration_seconds=round((utcnow() - started).total_seconds(), 2),
        )
        return listings

    async def _search(self, adapter: BaseRetailerAdapter, params: SearchParams) -> List[ProductListing]:
        if self.job_deadline_seconds is None:
            return await adapter.search_diapers(params)
        return await asyncio.wait_for(adapter.search_diapers(params), timeout=self.job_deadline_seconds)

    async def _run_adapter(self, adapter: BaseRetailerAdapter, params: SearchParams) -> AdapterRunResult:
        """Run one adapter behind the fault-isolation boundary.

        Never raises. Whatever happens, exactly one session log is written.
        """
        log = self.logger.bind(retailer=adapter.retailer_name)
        result = AdapterRunResult(retailer=adapter.retailer_name, started_at=utcnow())

        try:
            result.listings = await self._search(adapter, params)
            result.error = adapter.last_error
            result.success = adapter.last_error is None
        except asyncio.TimeoutError:
            result.error = ScraperError(
                adapter.retailer_name, f"deadline of {self.job_deadline_seconds}s exceeded"
            ).message
            log.warning("adapter_deadline_exceeded", deadline_seconds=self.job_deadline_seconds)
        except Exception as e:
            result.error = f"{type(e).__name__}: {e}"
            log.error("adapter_failed", error=str(e), exc_info=True)

        if self.persist and result.listings:
            try:
                async with self.session_factory() as db:
                    stats = await CatalogService(db).batch_upsert(result.listings)
                result.upserted = stats.upserted
                result.upsert_failed = stats.failed
                if stats.failed:
                    result.success = False
                    result.error = "; ".join(filter(None, [result.error, f"{stats.failed} listings failed to save"]))
            except Exception as e:
                result.success = False
                result.error = f"storage failure: {e}"
                log.error("adapter_persist_failed", error=str(e), exc_info=True)

        result.completed_at = utcnow()

        if self.persist:
            await self._record_session(result)

        log.info(
            "adapter_settled",
            success=result.success,
            listings=len(result.listings),
            upserted=result.upserted,
            error=result.error,
        )
        return result

    async def _record_session(self, result: AdapterRunResult) -> None:
        try:
            async with self.session_factory() as db:
                await ScrapeLogService(db).record_session(
                    retailer=result.retailer,
                    started_at=result.started_at,
                    completed_at=result.completed_at,
                    items_found=len(result.listings),
                    success=result.success,
                    error_message=result.error,
                )
        except Exception as e:
            self.logger.error("session_log_write_failed", retailer=result.retailer, error=str(e), exc_info=True)
