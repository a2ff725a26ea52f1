"""Async database session and engine configuration."""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from pricetrack.config import settings


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for ``database_url``.

    SQLite doesn't support pool_size / max_overflow / pool_pre_ping and
    needs foreign keys switched on for ON DELETE CASCADE.
    """
    is_sqlite = database_url.startswith("sqlite")

    engine_kwargs: dict = {"echo": echo}
    if not is_sqlite:
        engine_kwargs.update(pool_size=20, max_overflow=10, pool_pre_ping=True)

    new_engine = create_async_engine(database_url, **engine_kwargs)

    if is_sqlite:
        @event.listens_for(new_engine.sync_engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine = build_engine(settings.DATABASE_URL, echo=False)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
