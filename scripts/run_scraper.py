"""Manual scraper runner for testing and debugging adapters.

Runs one or more retailer adapters through the orchestrator and prints the
listings they return, cheapest per unit first.

Usage:
    python scripts/run_scraper.py --list-retailers
    python scripts/run_scraper.py --retailer walmart --brand Pampers --size 3
    python scripts/run_scraper.py --retailer amazon --retailer costco --dry-run
"""

import asyncio
import argparse
import sys
import os

# Add backend to path so we can import diaper_pricer modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from diaper_pricer.config import settings
from diaper_pricer.core.logging import configure_logging
from diaper_pricer.db.session import async_session_factory, engine
from diaper_pricer.models import Base
from diaper_pricer.scrapers.base import SearchParams
from diaper_pricer.scrapers.factory import AdapterFactory
from diaper_pricer.scrapers.orchestrator import ScrapeOrchestrator
from diaper_pricer.scrapers.register_adapters import register_all_adapters


def list_retailers(factory: AdapterFactory) -> None:
    print("\nRegistered retailers:")
    for key, name in factory.get_retailer_names().items():
        print(f"   - {key:<15} {name}")
    print()


async def run_scraper(retailers, brands, sizes, dry_run: bool, limit: int) -> int:
    """Run the selected adapters and display the results.

    Args:
        retailers: Retailer keys, empty for all registered adapters
        brands: Brands to search
        sizes: Sizes to search
        dry_run: Print listings without writing to the database
        limit: Maximum number of listings to display

    Returns:
        Process exit code
    """
    factory = register_all_adapters(AdapterFactory())

    unknown = [key for key in retailers if not factory.has_adapter(key)]
    if unknown:
        print(f"\nError: unknown retailer(s): {', '.join(unknown)}")
        list_retailers(factory)
        return 2

    params = SearchParams(brands=brands, sizes=sizes)
    adapters = factory.create_adapters(retailers)

    print(f"\n{'=' * 70}")
    print(f"  Retailers: {', '.join(a.retailer_name for a in adapters)}")
    print(f"  Brands:    {', '.join(params.brands)}")
    print(f"  Sizes:     {', '.join(params.sizes)}")
    print(f"  Mode:      {'dry run (nothing saved)' if dry_run else 'persisting to ' + settings.DATABASE_URL}")
    print(f"{'=' * 70}\n")

    try:
        if not dry_run:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

        orchestrator = ScrapeOrchestrator(
            async_session_factory,
            adapters,
            job_deadline_seconds=settings.JOB_DEADLINE_SECONDS,
            persist=not dry_run,
        )
        listings = await orchestrator.run_scraping_job(params)

        listings.sort(key=lambda listing: listing.price_per_unit)
        for i, listing in enumerate(listings[:limit], 1):
            print(f"[{i}] {listing.brand} {listing.product_type} size {listing.size} - {listing.retailer}")
            print(f"    Pack:     {listing.pack_count}")
            print(f"    Price:    ${listing.total_price:,.2f}  (${listing.price_per_unit:.4f}/diaper)")
            print(f"    URL:      {listing.source_url[:80]}")
            print()

        print(f"{'=' * 70}")
        print("  Summary")
        print(f"{'=' * 70}")
        for result in orchestrator.last_results:
            outcome = "ok" if result.success else f"FAILED ({result.error})"
            print(f"  {result.retailer:<26} {len(result.listings):>4} listings  {outcome}")
        print(f"  Total listings: {len(listings)}")
        print(f"{'=' * 70}\n")
        return 0
    finally:
        await factory.close()
        await engine.dispose()


def main():
    """Parse arguments and run the scraper."""
    parser = argparse.ArgumentParser(
        description="Run retailer scraper adapters for testing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_scraper.py --list-retailers
  python scripts/run_scraper.py --retailer walmart --brand Pampers --size 3
  python scripts/run_scraper.py --dry-run
        """,
    )

    parser.add_argument(
        "--retailer",
        action="append",
        default=[],
        help="Retailer key (repeatable, default: all registered)",
    )
    parser.add_argument(
        "--brand",
        action="append",
        default=[],
        help="Brand to search (repeatable, default: DEFAULT_BRANDS)",
    )
    parser.add_argument(
        "--size",
        action="append",
        default=[],
        help="Size to search (repeatable, default: DEFAULT_SIZES)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print listings without writing them to the database",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Maximum number of listings to display (default: 20)",
    )
    parser.add_argument(
        "--list-retailers",
        action="store_true",
        help="List registered retailer keys and exit",
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        help="Log level (default: LOG_LEVEL)",
    )

    args = parser.parse_args()
    configure_logging(level=args.log_level, json_output=False)

    if args.list_retailers:
        list_retailers(register_all_adapters(AdapterFactory()))
        return

    exit_code = asyncio.run(
        run_scraper(
            retailers=args.retailer,
            brands=args.brand or settings.get_default_brands(),
            sizes=args.size or settings.get_default_sizes(),
            dry_run=args.dry_run,
            limit=args.limit,
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
