"""Pydantic schemas for the scrape runner's NDJSON event stream.

One JSON object per line on the runner's stdout. Field names are
camelCase on the wire; numbers are plain JSON numbers.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


SCRAPE_ERROR = "scrape-error"
LOGIN_ERROR = "login-error"


class EventModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_line(self) -> str:
        """Serialize as a single NDJSON line (without the newline)."""
        return self.model_dump_json(by_alias=True)


class PriceEvent(EventModel):
    """A successful extraction for one product link."""

    id: Optional[int] = Field(None, description="ProductLink id", examples=[42])
    ts: str = Field(..., description="ISO-8601 capture time (UTC)", examples=["2025-01-01T09:30:00+00:00"])
    site_id: str = Field(..., examples=["romprod"])
    name: str = Field(..., examples=["Sunflower Oil 1L"])
    sku: Optional[str] = None
    url: str
    search_query: Optional[str] = None
    currency: Literal["GBP"] = "GBP"
    amount: float = Field(..., ge=0, description="Unit price when known, otherwise pack price", examples=[9.5])
    pack_price: Optional[float] = Field(None, ge=0, examples=[114.0])
    pack_size: Optional[int] = Field(None, gt=0, examples=[12])
    unit_label: Optional[str] = Field(None, examples=["unit"])
    pack_label: Optional[str] = Field(None, examples=["box"])
    formatted: str = Field(..., examples=["£9.50"])


class ScrapeErrorEvent(EventModel):
    """Extraction failed for one product link."""

    type: Literal["scrape-error"] = SCRAPE_ERROR
    site_id: str
    url: str
    message: str


class LoginErrorEvent(EventModel):
    """A site could not be authenticated; its links were skipped."""

    type: Literal["login-error"] = LOGIN_ERROR
    site_id: str
    message: str
