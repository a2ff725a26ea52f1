"""Append-only price snapshots for product links."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pricetrack.models.base import Base, IntegerPrimaryKeyMixin

if TYPE_CHECKING:
    from pricetrack.models.product_link import ProductLink


class PriceSnapshot(IntegerPrimaryKeyMixin, Base):
    """One successful extraction. Never updated; removed only by cascade."""

    __tablename__ = "price_snapshots"

    product_link_id: Mapped[int] = mapped_column(
        ForeignKey("product_links.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False, comment="Unit price at this point in time")
    pack_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 4), nullable=True)
    pack_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    captured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="When this price was captured",
    )

    __table_args__ = (
        Index("idx_price_snapshots_link_captured", "product_link_id", "captured_at"),
    )

    # Relationships
    product_link: Mapped["ProductLink"] = relationship(back_populates="snapshots")

    def __repr__(self) -> str:
        return f"<PriceSnapshot(id={self.id}, product_link_id={self.product_link_id}, unit_price={self.unit_price}, captured_at={self.captured_at})>"
