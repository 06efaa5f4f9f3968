"""Fallback catalog seeding.

Populates an empty catalog with a small set of known listings so read
endpoints have something to serve before the first successful scrape.
Seed rows are never used to overwrite scraped data.

Run with: python -m diaper_pricer.db.seed
"""

import asyncio
from decimal import Decimal

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from diaper_pricer.models import Base, DiaperListing
from diaper_pricer.scrapers.utils.normalizer import price_per_unit

logger = structlog.get_logger(__name__)


FALLBACK_CATALOG = [
    # Amazon.ca
    {"brand": "Pampers", "product_type": "Baby Dry", "size": "3", "pack_count": 198,
     "retailer": "Amazon.ca", "total_price": "54.97",
     "source_url": "https://www.amazon.ca/dp/B07FQRZ8QM"},
    {"brand": "Pampers", "product_type": "Cruisers 360", "size": "3", "pack_count": 84,
     "retailer": "Amazon.ca", "total_price": "29.97",
     "source_url": "https://www.amazon.ca/dp/B08QY6HT97"},
    {"brand": "Huggies", "product_type": "Little Snugglers", "size": "3", "pack_count": 132,
     "retailer": "Amazon.ca", "total_price": "47.97",
     "source_url": "https://www.amazon.ca/dp/B07FQRQTGX"},
    {"brand": "Huggies", "product_type": "Overnites", "size": "3", "pack_count": 66,
     "retailer": "Amazon.ca", "total_price": "26.97",
     "source_url": "https://www.amazon.ca/dp/B07G2XN8H7"},
    # Costco Canada
    {"brand": "Kirkland", "product_type": "Signature", "size": "3", "pack_count": 192,
     "retailer": "Costco Canada", "total_price": "49.99",
     "source_url": "https://www.costco.ca/kirkland-signature-diapers-size-3.product.100506047.html"},
    {"brand": "Pampers", "product_type": "Baby Dry", "size": "3", "pack_count": 246,
     "retailer": "Costco Canada", "total_price": "64.99",
     "source_url": "https://www.costco.ca/pampers-baby-dry-size-3.product.100506048.html"},
    # Walmart Canada
    {"brand": "Pampers", "product_type": "Cruisers", "size": "3", "pack_count": 144,
     "retailer": "Walmart Canada", "total_price": "52.97",
     "source_url": "https://www.walmart.ca/en/ip/pampers-cruisers-diapers-size-3/6000200832288"},
    {"brand": "Huggies", "product_type": "Little Movers", "size": "3", "pack_count": 120,
     "retailer": "Walmart Canada", "total_price": "44.97",
     "source_url": "https://www.walmart.ca/en/ip/huggies-little-movers-diapers-size-3/6000200832289"},
    # Well.ca
    {"brand": "Seventh Generation", "product_type": "Regular", "size": "3", "pack_count": 84,
     "retailer": "Well.ca", "total_price": "34.99",
     "source_url": "https://well.ca/products/seventh-generation-baby-diapers_88234.html"},
    {"brand": "Honest", "product_type": "Club Box", "size": "3", "pack_count": 92,
     "retailer": "Well.ca", "total_price": "32.99",
     "source_url": "https://well.ca/products/honest-club-box-diapers-size-3_134567.html"},
    # Canadian Tire
    {"brand": "Pampers", "product_type": "Baby Dry", "size": "3", "pack_count": 128,
     "retailer": "Canadian Tire", "total_price": "42.99",
     "source_url": "https://www.canadiantire.ca/en/pdp/pampers-baby-dry-diapers-size-3-0537021p.html"},
    {"brand": "Huggies", "product_type": "Little Snugglers", "size": "3", "pack_count": 96,
     "retailer": "Canadian Tire", "total_price": "36.99",
     "source_url": "https://www.canadiantire.ca/en/pdp/huggies-snugglers-diapers-size-3-0537022p.html"},
    # Shoppers Drug Mart
    {"brand": "Pampers", "product_type": "Cruisers", "size": "3", "pack_count": 104,
     "retailer": "Shoppers Drug Mart", "total_price": "41.99",
     "source_url": "https://www1.shoppersdrugmart.ca/en/health-and-pharmacy/baby-and-kids/pampers-cruisers"},
    {"brand": "Huggies", "product_type": "Little Snugglers", "size": "3", "pack_count": 80,
     "retailer": "Shoppers Drug Mart", "total_price": "32.99",
     "source_url": "https://www1.shoppersdrugmart.ca/en/health-and-pharmacy/baby-and-kids/huggies-little-snugglers"},
    # Real Canadian Superstore
    {"brand": "President's Choice", "product_type": "Ultra Soft", "size": "3", "pack_count": 120,
     "retailer": "Real Canadian Superstore", "total_price": "29.99",
     "source_url": "https://www.realcanadiansuperstore.ca/presidents-choice-ultra-soft-diapers-size-3/p/20978453_EA"},
    {"brand": "Pampers", "product_type": "Baby Dry", "size": "3", "pack_count": 168,
     "retailer": "Real Canadian Superstore", "total_price": "49.99",
     "source_url": "https://www.realcanadiansuperstore.ca/pampers-baby-dry-diapers-size-3/p/20978454_EA"},
]


async def seed_fallback_catalog(session: AsyncSession) -> int:
    """Insert the fallback catalog if the products table is empty.

    Args:
        session: Async database session

    Returns:
        Number of rows inserted (0 when the catalog already has data)
    """
    existing = await session.scalar(select(func.count()).select_from(DiaperListing))
    if existing:
        logger.info("fallback_seed_skipped", existing_listings=existing)
        return 0

    for row in FALLBACK_CATALOG:
        total = Decimal(row["total_price"])
        session.add(
            DiaperListing(
                brand=row["brand"],
                product_type=row["product_type"],
                size=row["size"],
                pack_count=row["pack_count"],
                retailer=row["retailer"],
                total_price=total,
                price_per_unit=price_per_unit(total, row["pack_count"]),
                source_url=row["source_url"],
                in_stock=True,
                # Seed rows were never fetched; staleness checks ignore them
                last_fetched_at=None,
            )
        )

    await session.commit()
    logger.info("fallback_catalog_seeded", count=len(FALLBACK_CATALOG))
    return len(FALLBACK_CATALOG)


async def main() -> None:
    """Create tables and seed the fallback catalog."""
    from diaper_pricer.db.session import async_session_factory, engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        inserted = await seed_fallback_catalog(session)

    print(f"Seeded {inserted} fallback listings")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
