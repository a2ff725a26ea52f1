"""Site adapter interface and the data structures adapters exchange.

Every marketplace adapter implements the three operations of
:class:`SiteAdapter`: session detection, login and price extraction.
Adapters do not inherit from a shared base class; common behaviour lives
in composable helpers (``scrapers.utils`` and ``scrapers.extraction``).
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from playwright.async_api import Page

from pricetrack.scrapers.utils.credentials import Credentials


@dataclass
class ProductLinkTarget:
    """A product link as handed to the scrape runner."""

    id: Optional[int]
    name: str
    site_id: str
    url: str
    sku: Optional[str] = None
    selector: Optional[str] = None
    search_query: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductLinkTarget":
        """Build from the camelCase records in the run links file."""
        raw_id = data.get("id")
        return cls(
            id=int(raw_id) if raw_id is not None else None,
            name=str(data.get("name") or "Unknown"),
            site_id=str(data.get("siteId") or data.get("site_id") or ""),
            url=str(data.get("url") or ""),
            sku=data.get("sku"),
            selector=data.get("selector"),
            search_query=data.get("searchQuery") or data.get("search_query"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "siteId": self.site_id,
            "url": self.url,
            "sku": self.sku,
            "selector": self.selector,
            "searchQuery": self.search_query,
        }


@dataclass
class PriceResult:
    """Outcome of one successful extraction.

    ``amount`` is the unit price when known, otherwise the pack price.
    """

    amount: Decimal
    unit_label: Optional[str] = None
    pack_price: Optional[Decimal] = None
    pack_size: Optional[int] = None
    pack_label: Optional[str] = None

    def __post_init__(self):
        """Validate data after initialization."""
        if self.amount is None or self.amount < 0:
            raise ValueError("amount must be a non-negative Decimal")
        if self.pack_size is not None and self.pack_size <= 0:
            raise ValueError("pack_size must be positive")


@runtime_checkable
class SiteAdapter(Protocol):
    """Capabilities every marketplace adapter provides."""

    site_id: str

    async def is_logged_in(self, page: Page) -> bool:
        """Re-verify the session on the live page; never assume success."""
        ...

    async def login(self, page: Page, credentials: Credentials) -> None:
        """Authenticate the page.

        Raises:
            AuthenticationFailure: If the login cannot be verified
        """
        ...

    async def extract_price(self, page: Page, link: ProductLinkTarget) -> PriceResult:
        """Read the current price for ``link``.

        Raises:
            ExtractionFailure: If the price cannot be read
        """
        ...
