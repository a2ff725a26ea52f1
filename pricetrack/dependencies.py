"""FastAPI dependency injection providers."""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from pricetrack.db.session import async_session_factory
from pricetrack.services.run_service import RunService, get_run_service


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for request-scoped usage.

    The session is automatically committed on success or rolled back on error.
    Always closed after the request completes.

    Usage:
        @router.get("/status")
        async def status(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_session_factory():
    """Session factory used by services that open one transaction per item."""
    return async_session_factory


def get_runs() -> RunService:
    """The process-wide run service (owns background ingestion tasks)."""
    return get_run_service()
