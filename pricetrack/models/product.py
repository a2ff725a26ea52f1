"""Product model: a catalog item tracked across one or more sites."""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pricetrack.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin

if TYPE_CHECKING:
    from pricetrack.models.product_link import ProductLink


class Product(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Catalog product. Managed by the dashboard; read-only to the scraper core."""

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(500), nullable=False, comment="Product name")
    sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)

    # Relationships
    links: Mapped[list["ProductLink"]] = relationship(back_populates="product", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name[:50]}')>"
