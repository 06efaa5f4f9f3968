"""Diaper listing Pydantic schemas for response serialization."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ListingResponse(BaseModel):
    """One retailer's offer for a brand / product line / size."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    brand: str
    product_type: str
    size: str
    retailer: str
    pack_count: int
    total_price: Decimal
    price_per_unit: Decimal
    source_url: str
    in_stock: bool
    last_fetched_at: Optional[datetime] = None
    updated_at: datetime


class PriceHistoryPoint(BaseModel):
    """Single price history data point."""

    model_config = ConfigDict(from_attributes=True)

    total_price: Decimal
    price_per_unit: Decimal
    in_stock: bool
    recorded_at: datetime
