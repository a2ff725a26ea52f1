"""Manual price capture for the site that blocks automation.

A human-operated helper visits each link, reads the price and posts
it back. Entries go through the same upsert and change detection as
scraped prices.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import selectinload

from pricetrack.core.exceptions import MalformedEvent, PersistenceFailure
from pricetrack.models import ProductLink, Site
from pricetrack.schemas.manual import ManualLink, ManualLinksResponse
from pricetrack.scrapers.sites import MANUAL_ONLY_SITE, SITE_BY_ID
from pricetrack.scrapers.utils.normalizer import clean_label, coerce_decimal, coerce_int
from pricetrack.services.ingestion_service import PriceObservation, apply_observation, parse_timestamp

logger = structlog.get_logger(__name__)

# Placeholder some links were created with; not a usable selector
PLACEHOLDER_SELECTOR = "price"


def effective_selector(selector: Optional[str]) -> Optional[str]:
    raw = (selector or "").strip()
    if not raw or raw.lower() == PLACEHOLDER_SELECTOR:
        return SITE_BY_ID[MANUAL_ONLY_SITE].default_selector
    return raw


def observation_from_entry(entry: Dict[str, Any]) -> PriceObservation:
    """Build an observation from one helper entry.

    Raises:
        MalformedEvent: If the id or unit price is missing or unusable
    """
    if not isinstance(entry, dict):
        raise MalformedEvent("entry is not an object")

    link_id = coerce_int(entry.get("id"))
    if link_id is None:
        raise MalformedEvent("entry has no usable id")

    raw_price = next((entry[key] for key in ("unitPrice", "amount", "price") if entry.get(key) is not None), None)
    unit_price = coerce_decimal(raw_price)
    if unit_price is None or unit_price < 0:
        raise MalformedEvent(f"entry {link_id} has no usable unit price")

    pack_price = coerce_decimal(entry.get("packPrice"))
    pack_size = coerce_int(entry.get("packSize"))
    return PriceObservation(
        link_id=link_id,
        unit_price=unit_price,
        captured_at=parse_timestamp(entry.get("capturedAt")),
        pack_price=pack_price if pack_price is not None and pack_price >= 0 else None,
        pack_size=pack_size if pack_size and pack_size > 0 else None,
        unit_label=clean_label(entry.get("unitLabel")),
        pack_label=clean_label(entry.get("packLabel")),
    )


@dataclass
class CaptureResult:
    updated: int = 0
    errors: int = 0


class ManualCaptureService:
    """Lists links for the helper and stores what it captured."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self.logger = logger.bind(service="manual_capture", site_id=MANUAL_ONLY_SITE)

    async def _site(self, session) -> Optional[Site]:
        result = await session.execute(select(Site).where(Site.slug == MANUAL_ONLY_SITE))
        return result.scalar_one_or_none()

    async def list_links(self) -> Optional[ManualLinksResponse]:
        """Links on the manual site, or None if the site is not seeded."""
        async with self.session_factory() as session:
            site = await self._site(session)
            if site is None:
                return None

            result = await session.execute(
                select(ProductLink)
                .where(ProductLink.site_id == site.id)
                .options(selectinload(ProductLink.product))
                .order_by(ProductLink.id)
            )
            links: List[ManualLink] = [
                ManualLink(
                    id=link.id,
                    url=link.url,
                    selector=effective_selector(link.selector),
                    product_name=link.product.name,
                    search_query=link.search_query,
                    last_price_unit=float(link.last_price) if link.last_price is not None else None,
                    last_price_pack=float(link.last_price_pack) if link.last_price_pack is not None else None,
                    pack_size=link.pack_size,
                    unit_label=link.unit_label,
                    pack_label=link.pack_label,
                    last_checked=link.last_checked,
                )
                for link in result.scalars().all()
            ]
            return ManualLinksResponse(site=site.name, count=len(links), links=links)

    async def capture(self, entries: List[Dict[str, Any]]) -> Optional[CaptureResult]:
        """Store captured entries, one transaction each.

        Returns:
            Counts of stored and rejected entries, or None if the site is
            not seeded
        """
        async with self.session_factory() as session:
            site = await self._site(session)
            if site is None:
                return None
            site_pk = site.id

        outcome = CaptureResult()
        for entry in entries:
            try:
                observation = observation_from_entry(entry)
                await self._store(site_pk, observation)
                outcome.updated += 1
            except (MalformedEvent, PersistenceFailure) as e:
                outcome.errors += 1
                self.logger.warning("manual_entry_rejected", error=e.message)

        self.logger.info("manual_capture_stored", updated=outcome.updated, errors=outcome.errors)
        return outcome

    async def _store(self, site_pk: int, observation: PriceObservation) -> None:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    link = await session.get(ProductLink, observation.link_id)
                    if link is None or link.site_id != site_pk:
                        raise PersistenceFailure(f"link {observation.link_id} is not on {MANUAL_ONLY_SITE}")
                    await apply_observation(session, observation)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"could not store price for link {observation.link_id}: {e}")
