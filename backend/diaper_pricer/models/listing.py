"""Diaper listing model: one retailer's current offer for one product variant."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Integer, Boolean, Numeric, DateTime, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from diaper_pricer.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from diaper_pricer.models.price_history import PriceHistoryEntry


class DiaperListing(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Current offer keyed by (brand, product_type, size, retailer).

    Re-scraping the same key updates the row in place. Price snapshots
    accumulate separately in price_history.
    """

    __tablename__ = "products"

    # Natural key
    brand: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    product_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="Regular",
        comment="Product line, e.g. 'Swaddlers'"
    )
    size: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    retailer: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Offer
    pack_count: Mapped[int] = mapped_column(Integer, nullable=False, comment="Units per purchasable pack")
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    price_per_unit: Mapped[Decimal] = mapped_column(
        Numeric(10, 4),
        nullable=False,
        comment="total_price / pack_count rounded to 4 places"
    )
    source_url: Mapped[str] = mapped_column(String(2000), nullable=False, default="")
    in_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_fetched_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last time a scrape returned this listing"
    )

    __table_args__ = (
        UniqueConstraint("brand", "product_type", "size", "retailer", name="uq_products_natural_key"),
        Index("idx_products_stock_unit_price", "in_stock", "price_per_unit"),
    )

    price_history: Mapped[list["PriceHistoryEntry"]] = relationship(
        back_populates="listing",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PriceHistoryEntry.recorded_at",
    )

    def __repr__(self) -> str:
        return (
            f"<DiaperListing(brand='{self.brand}', type='{self.product_type}', "
            f"size='{self.size}', retailer='{self.retailer}', price={self.total_price})>"
        )
