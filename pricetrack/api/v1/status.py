"""Dashboard status endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pricetrack.dependencies import get_db
from pricetrack.schemas import StatusResponse
from pricetrack.services.status_service import StatusService

router = APIRouter()


@router.get("/status", response_model=StatusResponse)
async def get_status(db: AsyncSession = Depends(get_db)):
    """Latest run, the ten most recent price changes and per-site link counts."""
    service = StatusService(db)
    return await service.get_status()
