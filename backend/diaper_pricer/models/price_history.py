"""Price history snapshots for diaper listings."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Boolean, Numeric, DateTime, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from diaper_pricer.models.base import Base, UUIDPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from diaper_pricer.models.listing import DiaperListing


class PriceHistoryEntry(UUIDPrimaryKeyMixin, Base):
    """Point-in-time snapshot of a listing's price and availability.

    Append-only. Rows go away only when the owning listing is deleted.
    """

    __tablename__ = "price_history"

    listing_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False)
    in_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="When this snapshot was taken"
    )

    # Per-listing insertion order; breaks ties between equal recorded_at values
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        Index("idx_price_history_listing_recorded", "listing_id", "recorded_at"),
    )

    listing: Mapped["DiaperListing"] = relationship(back_populates="price_history")

    def __repr__(self) -> str:
        return f"<PriceHistoryEntry(listing_id={self.listing_id}, price={self.total_price}, recorded_at={self.recorded_at})>"
