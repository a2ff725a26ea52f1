"""Health check endpoint."""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pricetrack.dependencies import get_db
from pricetrack.schemas import HealthCheckResponse

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """Return service health status.

    Returns 200 in both cases; ``status`` is "degraded" when the database
    cannot be reached.
    """
    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        db_status = "ok"
    except SQLAlchemyError as e:
        logger.error("health_database_error", error=str(e), exc_info=True)
        db_status = "error"

    return HealthCheckResponse(
        status="ok" if db_status == "ok" else "degraded",
        database=db_status,
    )
