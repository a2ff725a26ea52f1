"""Price tracker API -- FastAPI application entry point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pricetrack.api.v1.router import api_v1_router
from pricetrack.config import settings
from pricetrack.core.logging import configure_logging
from pricetrack.db.seed import ensure_sites
from pricetrack.db.session import async_session_factory, engine
from pricetrack.models import Base
from pricetrack.services.run_service import get_run_service

configure_logging(debug=settings.DEBUG)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    logger.info("api_starting", environment=settings.ENVIRONMENT, debug=settings.DEBUG)

    # Auto-create tables on startup (safe for fresh deployments)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_tables_ready")

    async with async_session_factory() as session:
        async with session.begin():
            await ensure_sites(session)

    yield

    logger.info("api_stopping")
    await get_run_service().shutdown()


app = FastAPI(
    title="Price Tracker API",
    description="Wholesale price tracking: scrape runs, ingestion and change feed",
    version="0.1.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Price Tracker API",
        "version": "0.1.0",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
