"""Schemas for the dashboard status endpoint."""

from datetime import datetime
from typing import List, Optional

from pricetrack.schemas.common import CamelModel


class RunStatus(CamelModel):
    """The most recent run."""

    last_run: datetime
    status: str
    eta_sec: Optional[int] = None
    elapsed_sec: int
    note: Optional[str] = None


class FeedItem(CamelModel):
    """One recent price change."""

    product: str
    site: str
    old: float
    new: float
    changed_at: datetime


class SiteList(CamelModel):
    """Per-site link count and most recent check."""

    site: str
    items: int
    updated: Optional[datetime] = None


class StatusResponse(CamelModel):
    status: Optional[RunStatus] = None
    feed: List[FeedItem] = []
    lists: List[SiteList] = []
