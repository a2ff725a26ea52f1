"""Database seeding.

Sites are upserted from the static site registry on every startup.
Products and their links can be loaded from a JSON catalog for local
development:

    python -m pricetrack.db.seed --catalog data/catalog.json

Catalog format: a JSON array of
``{"name", "sku"?, "links": [{"siteId", "url", "selector"?, "searchQuery"?}]}``.
"""

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pricetrack.db.session import async_session_factory, engine
from pricetrack.models import Base, Product, ProductLink, Site
from pricetrack.scrapers.sites import SITE_DEFINITIONS

logger = structlog.get_logger(__name__)


async def ensure_sites(session: AsyncSession) -> int:
    """Insert or refresh one Site row per known marketplace.

    Returns:
        Number of sites inserted
    """
    result = await session.execute(select(Site))
    existing = {site.slug: site for site in result.scalars().all()}

    inserted = 0
    for definition in SITE_DEFINITIONS:
        site = existing.get(definition.id)
        if site is None:
            session.add(Site(slug=definition.id, name=definition.name, base=definition.base_url))
            inserted += 1
        else:
            site.name = definition.name
            site.base = definition.base_url

    await session.flush()
    if inserted:
        logger.info("sites_seeded", inserted=inserted)
    return inserted


async def seed_catalog(session: AsyncSession, entries: List[Dict[str, Any]]) -> int:
    """Add products and links from catalog entries, skipping known URLs.

    Returns:
        Number of links created
    """
    result = await session.execute(select(Site))
    sites = {site.slug: site for site in result.scalars().all()}
    known_urls = set((await session.execute(select(ProductLink.url))).scalars().all())

    created = 0
    for entry in entries:
        name = str(entry.get("name") or "").strip()
        if not name:
            logger.warning("catalog_entry_skipped", reason="missing name")
            continue

        product: Optional[Product] = None
        for raw_link in entry.get("links") or []:
            site = sites.get(raw_link.get("siteId"))
            url = str(raw_link.get("url") or "").strip()
            if site is None or not url or url in known_urls:
                continue
            if product is None:
                product = Product(name=name, sku=entry.get("sku"))
                session.add(product)
            session.add(
                ProductLink(
                    product=product,
                    site_id=site.id,
                    url=url,
                    selector=raw_link.get("selector"),
                    search_query=raw_link.get("searchQuery"),
                )
            )
            known_urls.add(url)
            created += 1

    await session.flush()
    logger.info("catalog_seeded", links=created)
    return created


async def main(catalog: Optional[str] = None) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        async with session.begin():
            await ensure_sites(session)
            if catalog:
                entries = json.loads(Path(catalog).read_text(encoding="utf-8"))
                await seed_catalog(session, entries)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed sites and, optionally, a product catalog.")
    parser.add_argument("--catalog", default=None, help="JSON catalog of products and links")
    args = parser.parse_args()
    asyncio.run(main(args.catalog))
