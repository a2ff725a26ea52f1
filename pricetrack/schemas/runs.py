"""Schemas for starting and resetting scrape runs."""

from typing import Optional

from pydantic import Field

from pricetrack.schemas.common import CamelModel


class RunRequest(CamelModel):
    site_id: Optional[str] = Field(
        None,
        description="Only scrape this site. Omit to scrape every automated site.",
        examples=["romprod"],
    )


class RunResponse(CamelModel):
    ok: bool = True
    count: int = Field(..., ge=0, description="Number of product links handed to the runner")
    site_id: Optional[str] = None
    run_id: int


class ResetResponse(CamelModel):
    reset: int = Field(..., ge=0, description="Number of running runs marked as errored")
