"""Schemas for the manual price capture flow."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from pricetrack.schemas.common import CamelModel


class ManualLink(CamelModel):
    """A link the capture helper should visit."""

    id: int
    url: str
    selector: Optional[str] = None
    product_name: str
    search_query: Optional[str] = None
    last_price_unit: Optional[float] = None
    last_price_pack: Optional[float] = None
    pack_size: Optional[int] = None
    unit_label: Optional[str] = None
    pack_label: Optional[str] = None
    last_checked: Optional[datetime] = None


class ManualLinksResponse(CamelModel):
    site: str
    count: int
    links: List[ManualLink]


class ManualCaptureRequest(CamelModel):
    """Captured prices from the helper.

    Entries are validated one by one so a bad entry is counted rather
    than rejecting the whole batch. Each entry carries ``id`` and
    ``unitPrice`` and optionally ``packPrice``, ``packSize``,
    ``unitLabel``, ``packLabel`` and ``capturedAt``.
    """

    entries: List[Dict[str, Any]] = Field(
        default_factory=list,
        examples=[[{"id": 7, "unitPrice": 1.25, "packPrice": 15.0, "packSize": 12}]],
    )


class ManualCaptureResponse(CamelModel):
    ok: bool = True
    updated: int
    errors: int
