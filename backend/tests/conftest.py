"""Pytest configuration and shared fixtures."""

import os

# Keep the app from starting the scheduler or seeding a real file database on import
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SEED_FALLBACK_CATALOG", "false")

from decimal import Decimal
from typing import Callable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from diaper_pricer.models import Base
from diaper_pricer.scrapers.base import ProductListing


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


@pytest_asyncio.fixture
async def test_db():
    """Create an in-memory SQLite database for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SessionLocal = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with SessionLocal() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """File-backed SQLite session factory.

    The orchestrator opens one session per adapter task, so these tests need
    real separate connections rather than one shared in-memory connection.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def make_listing() -> Callable[..., ProductListing]:
    """Build a valid ProductListing, overriding any field by keyword."""

    def _make(**overrides) -> ProductListing:
        fields = {
            "brand": "Pampers",
            "product_type": "Baby Dry",
            "size": "3",
            "pack_count": 198,
            "retailer": "Walmart Canada",
            "total_price": Decimal("54.97"),
            "source_url": "https://www.walmart.ca/en/ip/pampers-baby-dry/6000200832288",
            "in_stock": True,
        }
        fields.update(overrides)
        return ProductListing(**fields)

    return _make
