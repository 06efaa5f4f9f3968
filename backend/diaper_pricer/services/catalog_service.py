"""Catalog service: upsert, price history and filtered reads of listings.

Listings are keyed by (brand, product_type, size, retailer). Upserts use the
database's ON CONFLICT support so each key is written atomically, and every
upsert appends a price_history snapshot whether or not the price moved.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Sequence
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from diaper_pricer.core.exceptions import NotFoundError, StorageError
from diaper_pricer.models.base import utcnow
from diaper_pricer.models.listing import DiaperListing
from diaper_pricer.models.price_history import PriceHistoryEntry
from diaper_pricer.scrapers.base import ProductListing

logger = structlog.get_logger(__name__)


ALL = "all"

SORT_FIELDS = {
    "price_per_unit": DiaperListing.price_per_unit,
    "price": DiaperListing.total_price,
    "brand": DiaperListing.brand,
    "updated": DiaperListing.updated_at,
}
DEFAULT_SORT_FIELD = "price_per_unit"

# Deterministic ordering among equal sort values
_TIE_BREAKERS = (
    DiaperListing.price_per_unit,
    DiaperListing.brand,
    DiaperListing.product_type,
    DiaperListing.size,
    DiaperListing.retailer,
    DiaperListing.id,
)


@dataclass
class ListingFilters:
    """Exact-match filters; None or "all" means no constraint."""

    brand: Optional[str] = None
    size: Optional[str] = None
    retailer: Optional[str] = None


@dataclass
class ListingSort:
    field: str = DEFAULT_SORT_FIELD
    direction: str = "asc"

    def __post_init__(self):
        if self.field not in SORT_FIELDS:
            raise ValueError(f"Unsupported sort field: {self.field}")
        if self.direction not in ("asc", "desc"):
            raise ValueError(f"Unsupported sort direction: {self.direction}")


@dataclass
class BatchUpsertResult:
    upserted: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)


def _size_sort_key(size: str):
    return (0, int(size), "") if size.isdigit() else (1, 0, size.lower())


class CatalogService:
    """Service for the listing catalog and its price history."""

    def __init__(self, db: AsyncSession):
        """Initialize catalog service.

        Args:
            db: Async database session
        """
        self.db = db
        self.logger = logger.bind(service="catalog_service")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _insert_for_dialect(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert
        if dialect == "sqlite":
            return sqlite_insert
        raise StorageError(f"Upsert is not supported on dialect '{dialect}'")

    async def upsert_listing(self, listing: ProductListing) -> DiaperListing:
        """Insert or update a listing by its natural key.

        On conflict the mutable fields (pack count, prices, URL, stock) are
        overwritten and updated_at/last_fetched_at refreshed. Does not commit.

        Args:
            listing: Validated listing from an adapter

        Returns:
            The stored DiaperListing row
        """
        insert = self._insert_for_dialect()
        now = utcnow()

        stmt = insert(DiaperListing).values(
            brand=listing.brand,
            product_type=listing.product_type,
            size=listing.size,
            retailer=listing.retailer,
            pack_count=listing.pack_count,
            total_price=listing.total_price,
            price_per_unit=listing.price_per_unit,
            source_url=listing.source_url,
            in_stock=listing.in_stock,
            last_fetched_at=listing.last_fetched_at,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["brand", "product_type", "size", "retailer"],
            set_={
                "pack_count": stmt.excluded.pack_count,
                "total_price": stmt.excluded.total_price,
                "price_per_unit": stmt.excluded.price_per_unit,
                "source_url": stmt.excluded.source_url,
                "in_stock": stmt.excluded.in_stock,
                "last_fetched_at": stmt.excluded.last_fetched_at,
                "updated_at": now,
            },
        ).returning(DiaperListing.id)

        result = await self.db.execute(stmt)
        listing_id = result.scalar_one()

        stored = await self.db.get(DiaperListing, listing_id, populate_existing=True)
        self.logger.debug(
            "listing_upserted",
            listing_id=str(listing_id),
            retailer=listing.retailer,
            brand=listing.brand,
            size=listing.size,
        )
        return stored

    async def record_history(
        self,
        listing_id: UUID,
        total_price: Decimal,
        price_per_unit: Decimal,
        in_stock: bool,
        recorded_at: Optional[datetime] = None,
    ) -> PriceHistoryEntry:
        """Append a price snapshot. Never skipped for unchanged values. Does not commit."""
        last_sequence = await self.db.scalar(
            select(func.coalesce(func.max(PriceHistoryEntry.sequence), 0)).where(
                PriceHistoryEntry.listing_id == listing_id
            )
        )
        entry = PriceHistoryEntry(
            listing_id=listing_id,
            total_price=total_price,
            price_per_unit=price_per_unit,
            in_stock=in_stock,
            recorded_at=recorded_at or utcnow(),
            sequence=last_sequence + 1,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def save_listing(self, listing: ProductListing) -> DiaperListing:
        """Upsert a listing and record its price snapshot in one transaction."""
        stored = await self.upsert_listing(listing)
        await self.record_history(
            stored.id,
            listing.total_price,
            listing.price_per_unit,
            listing.in_stock,
            recorded_at=listing.last_fetched_at,
        )
        await self.db.commit()
        return stored

    async def batch_upsert(self, listings: Sequence[ProductListing]) -> BatchUpsertResult:
        """Save listings one by one; a failed listing does not stop the batch.

        Args:
            listings: Listings to persist

        Returns:
            Counts of saved and failed listings plus error messages
        """
        result = BatchUpsertResult()

        for listing in listings:
            try:
                await self.save_listing(listing)
                result.upserted += 1
            except Exception as e:
                await self.db.rollback()
                result.failed += 1
                result.errors.append(f"{listing.brand}/{listing.size}/{listing.retailer}: {e}")
                self.logger.error(
                    "listing_upsert_failed",
                    brand=listing.brand,
                    size=listing.size,
                    retailer=listing.retailer,
                    error=str(e),
                    exc_info=True,
                )

        self.logger.info("batch_upsert_completed", upserted=result.upserted, failed=result.failed)
        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def query_listings(
        self,
        filters: Optional[ListingFilters] = None,
        sort: Optional[ListingSort] = None,
    ) -> List[DiaperListing]:
        """Get in-stock listings matching the filters, sorted.

        Args:
            filters: Exact-match brand/size/retailer filters
            sort: Sort field and direction (default: price per unit ascending)

        Returns:
            List of DiaperListing rows
        """
        filters = filters or ListingFilters()
        sort = sort or ListingSort()

        query = select(DiaperListing).where(DiaperListing.in_stock.is_(True))

        for column, value in (
            (DiaperListing.brand, filters.brand),
            (DiaperListing.size, filters.size),
            (DiaperListing.retailer, filters.retailer),
        ):
            if value and value != ALL:
                query = query.where(column == value)

        primary = SORT_FIELDS[sort.field]
        order = [primary.desc() if sort.direction == "desc" else primary.asc()]
        order.extend(col.asc() for col in _TIE_BREAKERS if col is not primary)

        result = await self.db.execute(query.order_by(*order))
        return list(result.scalars().all())

    async def get_listing(self, listing_id: UUID) -> DiaperListing:
        """Get a listing by ID.

        Raises:
            NotFoundError: No listing with that ID
        """
        listing = await self.db.get(DiaperListing, listing_id)
        if listing is None:
            raise NotFoundError("Listing", str(listing_id))
        return listing

    async def get_listing_by_key(self, brand: str, product_type: str, size: str, retailer: str) -> Optional[DiaperListing]:
        result = await self.db.execute(
            select(DiaperListing).where(
                DiaperListing.brand == brand,
                DiaperListing.product_type == product_type,
                DiaperListing.size == size,
                DiaperListing.retailer == retailer,
            )
        )
        return result.scalar_one_or_none()

    async def _distinct(self, column) -> List[str]:
        result = await self.db.execute(select(column).distinct())
        return [value for value in result.scalars().all() if value]

    async def get_distinct_brands(self) -> List[str]:
        return sorted(await self._distinct(DiaperListing.brand), key=str.lower)

    async def get_distinct_sizes(self) -> List[str]:
        """Sizes ordered numerically, non-numeric sizes (e.g. "Newborn") last."""
        return sorted(await self._distinct(DiaperListing.size), key=_size_sort_key)

    async def get_distinct_retailers(self) -> List[str]:
        return sorted(await self._distinct(DiaperListing.retailer), key=str.lower)

    async def get_price_history(
        self,
        listing_id: UUID,
        days: int = 30,
        now: Optional[datetime] = None,
    ) -> List[PriceHistoryEntry]:
        """Get price snapshots for a listing, oldest first.

        Args:
            listing_id: Listing UUID
            days: Look-back window in days
            now: Reference time (default: current UTC time)

        Raises:
            NotFoundError: No listing with that ID
        """
        await self.get_listing(listing_id)

        since = (now or utcnow()) - timedelta(days=days)
        result = await self.db.execute(
            select(PriceHistoryEntry)
            .where(
                PriceHistoryEntry.listing_id == listing_id,
                PriceHistoryEntry.recorded_at >= since,
            )
            .order_by(PriceHistoryEntry.recorded_at.asc(), PriceHistoryEntry.sequence.asc())
        )
        return list(result.scalars().all())

    async def count_listings(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(DiaperListing))
        return result.scalar_one()
