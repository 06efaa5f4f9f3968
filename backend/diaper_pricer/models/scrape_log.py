"""Per-retailer scrape session outcomes."""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, Integer, Boolean, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from diaper_pricer.models.base import Base, UUIDPrimaryKeyMixin


class ScrapeSessionLog(UUIDPrimaryKeyMixin, Base):
    """Outcome of one orchestrator run for one retailer.

    Written once, after the adapter settles, so a row is never left half-filled.
    """

    __tablename__ = "scrape_logs"

    retailer: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    items_found: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_scrape_logs_success_completed", "success", "completed_at"),
    )

    def __repr__(self) -> str:
        return f"<ScrapeSessionLog(retailer='{self.retailer}', success={self.success}, items={self.items_found})>"
