"""Recorded unit price changes for product links."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pricetrack.models.base import Base, IntegerPrimaryKeyMixin

if TYPE_CHECKING:
    from pricetrack.models.product_link import ProductLink


class PriceChange(IntegerPrimaryKeyMixin, Base):
    """A unit price that differs from the previously stored one.

    Only written when a previous unit price existed, so the first
    observation of a link never produces a change.
    """

    __tablename__ = "price_changes"

    product_link_id: Mapped[int] = mapped_column(
        ForeignKey("product_links.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    old: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    new: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)

    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_price_changes_changed_desc", "changed_at"),
    )

    # Relationships
    product_link: Mapped["ProductLink"] = relationship(back_populates="changes")

    def __repr__(self) -> str:
        return f"<PriceChange(id={self.id}, product_link_id={self.product_link_id}, old={self.old}, new={self.new})>"
