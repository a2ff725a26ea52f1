"""Site model representing a wholesale marketplace."""

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pricetrack.models.base import Base, IntegerPrimaryKeyMixin

if TYPE_CHECKING:
    from pricetrack.models.product_link import ProductLink


class Site(IntegerPrimaryKeyMixin, Base):
    """Wholesale marketplace tracked by the scraper.

    ``slug`` is the site id used by adapters and the event stream
    (e.g. 'romprod'); ``name`` is the display name shown on the dashboard.
    """

    __tablename__ = "sites"

    slug: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False, comment="Adapter site id")
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, comment="Display name")
    base: Mapped[str] = mapped_column(String(500), nullable=False, comment="Site base URL")

    # Relationships
    links: Mapped[list["ProductLink"]] = relationship(back_populates="site", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Site(id={self.id}, slug='{self.slug}', name='{self.name}')>"
