"""Pytest configuration and shared fixtures."""

from decimal import Decimal
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pricetrack.db.seed import ensure_sites
from pricetrack.models import Base, Product, ProductLink, Site


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite database with every known site seeded."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as session:
        async with session.begin():
            await ensure_sites(session)

    yield factory

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_link(session_factory):
    """Create a product with one link on ``site_slug`` and return the link id."""

    async def _make(
        site_slug: str = "romprod",
        name: str = "Sunflower Oil 1L",
        url: Optional[str] = None,
        last_price: Optional[Decimal] = None,
        sku: Optional[str] = None,
        selector: Optional[str] = None,
        search_query: Optional[str] = None,
    ) -> int:
        async with session_factory() as session:
            async with session.begin():
                site = (await session.execute(select(Site).where(Site.slug == site_slug))).scalar_one()
                product = Product(name=name, sku=sku)
                link = ProductLink(
                    product=product,
                    site_id=site.id,
                    url=url or f"https://{site_slug}.example/{name.lower().replace(' ', '-')}",
                    selector=selector,
                    search_query=search_query,
                    last_price=last_price,
                )
                session.add(link)
                await session.flush()
                return link.id

    return _make
