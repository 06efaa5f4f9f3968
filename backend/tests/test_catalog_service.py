"""Tests for CatalogService and ScrapeLogService."""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from diaper_pricer.core.exceptions import NotFoundError
from diaper_pricer.db.seed import FALLBACK_CATALOG, seed_fallback_catalog
from diaper_pricer.models import DiaperListing, PriceHistoryEntry
from diaper_pricer.models.base import utcnow
from diaper_pricer.services.catalog_service import CatalogService, ListingFilters, ListingSort
from diaper_pricer.services.scrape_log_service import ScrapeLogService, is_stale
from diaper_pricer.scrapers.utils.normalizer import price_per_unit


async def count_rows(db, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


# ============================================================================
# Upsert and history
# ============================================================================


class TestUpsert:
    """Natural-key upsert and append-only history."""

    async def test_insert_new_listing(self, test_db, make_listing):
        service = CatalogService(test_db)

        stored = await service.save_listing(make_listing())

        assert stored.id is not None
        assert stored.price_per_unit == Decimal("0.2776")
        assert await count_rows(test_db, DiaperListing) == 1
        assert await count_rows(test_db, PriceHistoryEntry) == 1

    async def test_same_key_updates_in_place(self, test_db, make_listing):
        service = CatalogService(test_db)

        first = await service.save_listing(make_listing(total_price=Decimal("54.97")))
        second = await service.save_listing(
            make_listing(total_price=Decimal("49.97"), source_url="https://www.walmart.ca/en/ip/new")
        )

        assert second.id == first.id
        assert second.total_price == Decimal("49.97")
        assert second.price_per_unit == Decimal("0.2524")
        assert second.source_url == "https://www.walmart.ca/en/ip/new"
        assert await count_rows(test_db, DiaperListing) == 1

    async def test_history_recorded_even_when_unchanged(self, test_db, make_listing):
        service = CatalogService(test_db)

        for _ in range(3):
            stored = await service.save_listing(make_listing())

        history = await service.get_price_history(stored.id)
        assert len(history) == 3
        assert {entry.total_price for entry in history} == {Decimal("54.97")}

    async def test_different_retailer_is_a_new_row(self, test_db, make_listing):
        service = CatalogService(test_db)

        await service.save_listing(make_listing())
        await service.save_listing(make_listing(retailer="Amazon.ca"))

        assert await count_rows(test_db, DiaperListing) == 2

    async def test_stock_change_is_stored(self, test_db, make_listing):
        service = CatalogService(test_db)

        await service.save_listing(make_listing())
        stored = await service.save_listing(make_listing(in_stock=False))

        assert stored.in_stock is False

    async def test_batch_upsert_counts(self, test_db, make_listing):
        service = CatalogService(test_db)

        result = await service.batch_upsert(
            [make_listing(), make_listing(size="4"), make_listing(brand="Huggies", product_type="Little Movers")]
        )

        assert result.upserted == 3
        assert result.failed == 0
        assert await count_rows(test_db, DiaperListing) == 3

    async def test_batch_upsert_continues_after_failure(self, test_db, make_listing, monkeypatch):
        service = CatalogService(test_db)
        original = service.save_listing

        async def flaky_save(listing):
            if listing.size == "4":
                raise RuntimeError("disk full")
            return await original(listing)

        monkeypatch.setattr(service, "save_listing", flaky_save)

        result = await service.batch_upsert([make_listing(size="3"), make_listing(size="4"), make_listing(size="5")])

        assert result.upserted == 2
        assert result.failed == 1
        assert "disk full" in result.errors[0]
        assert await count_rows(test_db, DiaperListing) == 2


# ============================================================================
# Reads
# ============================================================================


class TestQueryListings:
    """Filtering and sorting of the catalog."""

    async def _populate(self, service, make_listing):
        await service.batch_upsert(
            [
                make_listing(brand="Pampers", size="3", retailer="Walmart Canada", total_price=Decimal("54.97"), pack_count=198),
                make_listing(brand="Huggies", product_type="Little Movers", size="3", retailer="Amazon.ca",
                             total_price=Decimal("44.97"), pack_count=120),
                make_listing(brand="Kirkland", product_type="Signature", size="4", retailer="Costco Canada",
                             total_price=Decimal("49.99"), pack_count=180),
                make_listing(brand="Pampers", product_type="Swaddlers", size="3", retailer="Amazon.ca",
                             total_price=Decimal("29.99"), pack_count=84, in_stock=False),
            ]
        )

    async def test_default_sort_is_cheapest_per_unit(self, test_db, make_listing):
        service = CatalogService(test_db)
        await self._populate(service, make_listing)

        listings = await service.query_listings()

        assert [l.brand for l in listings] == ["Pampers", "Kirkland", "Huggies"]
        prices = [l.price_per_unit for l in listings]
        assert prices == sorted(prices)

    async def test_out_of_stock_excluded(self, test_db, make_listing):
        service = CatalogService(test_db)
        await self._populate(service, make_listing)

        listings = await service.query_listings()

        assert all(l.in_stock for l in listings)
        assert "Swaddlers" not in {l.product_type for l in listings}

    async def test_filters(self, test_db, make_listing):
        service = CatalogService(test_db)
        await self._populate(service, make_listing)

        by_size = await service.query_listings(ListingFilters(size="3"))
        by_retailer = await service.query_listings(ListingFilters(retailer="Amazon.ca"))
        combined = await service.query_listings(ListingFilters(brand="Pampers", size="4"))

        assert {l.brand for l in by_size} == {"Pampers", "Huggies"}
        assert [l.brand for l in by_retailer] == ["Huggies"]
        assert combined == []

    async def test_all_means_no_filter(self, test_db, make_listing):
        service = CatalogService(test_db)
        await self._populate(service, make_listing)

        listings = await service.query_listings(ListingFilters(brand="all", size="all", retailer="all"))
        assert len(listings) == 3

    async def test_sort_by_total_price_desc(self, test_db, make_listing):
        service = CatalogService(test_db)
        await self._populate(service, make_listing)

        listings = await service.query_listings(sort=ListingSort(field="price", direction="desc"))
        assert [l.total_price for l in listings] == [Decimal("54.97"), Decimal("49.99"), Decimal("44.97")]

    async def test_sort_by_brand(self, test_db, make_listing):
        service = CatalogService(test_db)
        await self._populate(service, make_listing)

        listings = await service.query_listings(sort=ListingSort(field="brand"))
        assert [l.brand for l in listings] == ["Huggies", "Kirkland", "Pampers"]

    def test_invalid_sort(self):
        with pytest.raises(ValueError):
            ListingSort(field="rating")
        with pytest.raises(ValueError):
            ListingSort(direction="sideways")

    async def test_distinct_values(self, test_db, make_listing):
        service = CatalogService(test_db)
        await service.batch_upsert(
            [
                make_listing(size="10"),
                make_listing(size="Newborn"),
                make_listing(size="2"),
                make_listing(brand="huggies", size="2"),
                make_listing(retailer="Amazon.ca"),
            ]
        )

        assert await service.get_distinct_sizes() == ["2", "3", "10", "Newborn"]
        assert await service.get_distinct_brands() == ["huggies", "Pampers"]
        assert await service.get_distinct_retailers() == ["Amazon.ca", "Walmart Canada"]

    async def test_get_listing_not_found(self, test_db):
        with pytest.raises(NotFoundError):
            await CatalogService(test_db).get_listing(uuid4())

    async def test_get_listing_by_key(self, test_db, make_listing):
        service = CatalogService(test_db)
        stored = await service.save_listing(make_listing())

        found = await service.get_listing_by_key("Pampers", "Baby Dry", "3", "Walmart Canada")
        assert found.id == stored.id
        assert await service.get_listing_by_key("Pampers", "Baby Dry", "4", "Walmart Canada") is None


class TestPriceHistory:
    """Price history reads."""

    async def test_window_and_order(self, test_db, make_listing):
        service = CatalogService(test_db)
        now = utcnow()

        stored = await service.save_listing(make_listing(last_fetched_at=now - timedelta(days=40)))
        await service.save_listing(make_listing(total_price=Decimal("52.97"), last_fetched_at=now - timedelta(days=10)))
        await service.save_listing(make_listing(total_price=Decimal("49.97"), last_fetched_at=now - timedelta(days=1)))

        history = await service.get_price_history(stored.id, days=30, now=now)

        assert [entry.total_price for entry in history] == [Decimal("52.97"), Decimal("49.97")]

    async def test_equal_timestamps_keep_insertion_order(self, test_db, make_listing):
        service = CatalogService(test_db)
        fetched_at = utcnow() - timedelta(hours=1)
        prices = [Decimal("54.97"), Decimal("52.97"), Decimal("53.97"), Decimal("49.97")]

        for price in prices:
            stored = await service.save_listing(make_listing(total_price=price, last_fetched_at=fetched_at))

        history = await service.get_price_history(stored.id)

        assert [entry.total_price for entry in history] == prices
        assert [entry.sequence for entry in history] == [1, 2, 3, 4]

    async def test_unknown_listing(self, test_db):
        with pytest.raises(NotFoundError):
            await CatalogService(test_db).get_price_history(uuid4())


# ============================================================================
# Two consecutive runs
# ============================================================================


class TestConsecutiveRuns:
    """A second scrape updates rows in place and extends the history."""

    async def test_two_runs(self, test_db, make_listing):
        service = CatalogService(test_db)
        run_one = [
            make_listing(total_price=Decimal("54.97")),
            make_listing(brand="Huggies", product_type="Little Movers", pack_count=120, total_price=Decimal("44.97")),
        ]
        run_two = [
            make_listing(total_price=Decimal("51.97")),
            make_listing(brand="Huggies", product_type="Little Movers", pack_count=120, total_price=Decimal("44.97")),
        ]

        await service.batch_upsert(run_one)
        await service.batch_upsert(run_two)

        assert await count_rows(test_db, DiaperListing) == 2
        assert await count_rows(test_db, PriceHistoryEntry) == 4

        pampers = await service.get_listing_by_key("Pampers", "Baby Dry", "3", "Walmart Canada")
        assert pampers.total_price == Decimal("51.97")
        history = await service.get_price_history(pampers.id)
        assert [entry.total_price for entry in history] == [Decimal("54.97"), Decimal("51.97")]


# ============================================================================
# Scrape logs
# ============================================================================


class TestScrapeLogService:
    """Tests for ScrapeLogService."""

    async def test_record_session(self, test_db):
        service = ScrapeLogService(test_db)
        started = utcnow()

        entry = await service.record_session(
            retailer="Amazon.ca",
            started_at=started,
            completed_at=started + timedelta(seconds=2.5),
            items_found=4,
            success=True,
        )

        assert entry.duration_ms == 2500
        assert entry.error_message is None

    async def test_last_successful_run_ignores_failures(self, test_db):
        service = ScrapeLogService(test_db)
        now = utcnow()

        await service.record_session("Amazon.ca", now - timedelta(hours=5), now - timedelta(hours=4), 3, True)
        await service.record_session("Walmart Canada", now - timedelta(hours=1), now, 0, False, "blocked")

        last = await service.last_successful_run()
        assert last == now - timedelta(hours=4)

    async def test_last_successful_run_empty(self, test_db):
        assert await ScrapeLogService(test_db).last_successful_run() is None

    def test_is_stale(self):
        now = utcnow()

        assert is_stale(None, 6, now=now) is True
        assert is_stale(now - timedelta(hours=5), 6, now=now) is False
        assert is_stale(now - timedelta(hours=7), 6, now=now) is True

    async def test_is_catalog_stale(self, test_db):
        service = ScrapeLogService(test_db)
        now = utcnow()

        assert await service.is_catalog_stale(6, now=now) is True

        await service.record_session("Amazon.ca", now - timedelta(hours=2), now - timedelta(hours=1), 3, True)
        assert await service.is_catalog_stale(6, now=now) is False
        assert await service.is_catalog_stale(0.5, now=now) is True

    async def test_recent_logs(self, test_db):
        service = ScrapeLogService(test_db)
        now = utcnow()
        for i, retailer in enumerate(["Amazon.ca", "Walmart Canada", "Amazon.ca"]):
            await service.record_session(retailer, now, now + timedelta(minutes=i), i, True)

        logs = await service.recent_logs()
        assert [log.items_found for log in logs] == [2, 1, 0]

        amazon = await service.recent_logs(retailer="Amazon.ca", limit=1)
        assert len(amazon) == 1
        assert amazon[0].items_found == 2

    async def test_long_error_is_truncated(self, test_db):
        now = utcnow()
        entry = await ScrapeLogService(test_db).record_session("Well.ca", now, now, 0, False, "x" * 5000)
        assert len(entry.error_message) == 2000


# ============================================================================
# Fallback seed
# ============================================================================


class TestFallbackSeed:
    """Tests for seed_fallback_catalog()."""

    async def test_seeds_empty_catalog(self, test_db):
        inserted = await seed_fallback_catalog(test_db)

        assert inserted == len(FALLBACK_CATALOG)
        assert await count_rows(test_db, DiaperListing) == len(FALLBACK_CATALOG)

    async def test_skips_populated_catalog(self, test_db, make_listing):
        await CatalogService(test_db).save_listing(make_listing())

        assert await seed_fallback_catalog(test_db) == 0
        assert await count_rows(test_db, DiaperListing) == 1

    async def test_seed_rows_are_valid(self, test_db):
        await seed_fallback_catalog(test_db)

        listings = await CatalogService(test_db).query_listings()
        for listing in listings:
            assert listing.pack_count > 0
            assert listing.total_price > 0
            assert listing.price_per_unit == price_per_unit(listing.total_price, listing.pack_count)
            assert listing.last_fetched_at is None
