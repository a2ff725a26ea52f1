"""Dashboard status: latest run, recent price changes, per-site counts."""

from datetime import datetime, timezone
from typing import List, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pricetrack.models import PriceChange, ProductLink, QueryRun, Site
from pricetrack.schemas.status import FeedItem, RunStatus, SiteList, StatusResponse

logger = structlog.get_logger(__name__)

FEED_SIZE = 10


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class StatusService:
    """Read-only queries behind ``GET /api/v1/status``."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = logger.bind(service="status_service")

    async def latest_run(self, now: Optional[datetime] = None) -> Optional[RunStatus]:
        result = await self.db.execute(
            select(QueryRun).order_by(QueryRun.started_at.desc(), QueryRun.id.desc()).limit(1)
        )
        run = result.scalar_one_or_none()
        if run is None:
            return None

        started = _aware(run.started_at)
        finished = _aware(run.finished_at)
        end = finished or now or datetime.now(timezone.utc)
        return RunStatus(
            last_run=finished or started,
            status=run.status,
            eta_sec=run.eta_sec,
            elapsed_sec=max(0, round((end - started).total_seconds())),
            note=run.note,
        )

    async def recent_changes(self, limit: int = FEED_SIZE) -> List[FeedItem]:
        result = await self.db.execute(
            select(PriceChange)
            .options(
                selectinload(PriceChange.product_link).selectinload(ProductLink.product),
                selectinload(PriceChange.product_link).selectinload(ProductLink.site),
            )
            .order_by(PriceChange.changed_at.desc(), PriceChange.id.desc())
            .limit(limit)
        )
        return [
            FeedItem(
                product=change.product_link.product.name,
                site=change.product_link.site.name,
                old=float(change.old),
                new=float(change.new),
                changed_at=_aware(change.changed_at),
            )
            for change in result.scalars().all()
        ]

    async def site_lists(self) -> List[SiteList]:
        result = await self.db.execute(
            select(
                Site.name,
                func.count(ProductLink.id),
                func.max(ProductLink.last_checked),
            )
            .join(ProductLink, ProductLink.site_id == Site.id)
            .group_by(Site.id, Site.name)
            .order_by(Site.name)
        )
        return [
            SiteList(site=name, items=count, updated=_aware(updated))
            for name, count, updated in result.all()
        ]

    async def get_status(self) -> StatusResponse:
        return StatusResponse(
            status=await self.latest_run(),
            feed=await self.recent_changes(),
            lists=await self.site_lists(),
        )
