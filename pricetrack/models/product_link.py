"""ProductLink model: one tracked (product, site) pairing."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pricetrack.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin

if TYPE_CHECKING:
    from pricetrack.models.price_change import PriceChange
    from pricetrack.models.price_snapshot import PriceSnapshot
    from pricetrack.models.product import Product
    from pricetrack.models.site import Site


class ProductLink(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Where and how to read a product's price on one site.

    The price columns always hold the most recent successful extraction.
    Only the ingestion pipeline writes them.
    """

    __tablename__ = "product_links"

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    site_id: Mapped[int] = mapped_column(
        ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Targeting
    url: Mapped[str] = mapped_column(String(2000), nullable=False, comment="Product page URL")
    selector: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, comment="Price selector override")
    search_query: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, comment="Query for search-driven sites")

    # Last observed prices
    last_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 4),
        nullable=True,
        comment="Last observed unit price",
    )
    last_price_pack: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 4),
        nullable=True,
        comment="Last observed pack price",
    )
    pack_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    unit_label: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    pack_label: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    last_checked: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the last successful extraction was captured",
    )

    __table_args__ = (
        Index("idx_product_links_site_checked", "site_id", "last_checked"),
    )

    # Relationships
    product: Mapped["Product"] = relationship(back_populates="links")
    site: Mapped["Site"] = relationship(back_populates="links")
    snapshots: Mapped[list["PriceSnapshot"]] = relationship(
        back_populates="product_link",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PriceSnapshot.captured_at.desc()",
    )
    changes: Mapped[list["PriceChange"]] = relationship(
        back_populates="product_link",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PriceChange.changed_at.desc()",
    )

    def __repr__(self) -> str:
        return f"<ProductLink(id={self.id}, site_id={self.site_id}, last_price={self.last_price})>"
