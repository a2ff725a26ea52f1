"""Manual price capture endpoints for the site that blocks automation."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from pricetrack.dependencies import get_session_factory
from pricetrack.schemas import (
    ErrorResponse,
    ManualCaptureRequest,
    ManualCaptureResponse,
    ManualLinksResponse,
)
from pricetrack.services.manual_capture_service import ManualCaptureService

router = APIRouter()
logger = structlog.get_logger(__name__)

SITE_NOT_CONFIGURED = "Foodex site is not configured yet."


def get_manual_capture(session_factory=Depends(get_session_factory)) -> ManualCaptureService:
    return ManualCaptureService(session_factory)


@router.get(
    "/foodex",
    response_model=ManualLinksResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_manual_links(service: ManualCaptureService = Depends(get_manual_capture)):
    """Links the capture helper should visit, with the last stored prices."""
    links = await service.list_links()
    if links is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=SITE_NOT_CONFIGURED)
    return links


@router.post(
    "/foodex",
    response_model=ManualCaptureResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def capture_manual_prices(
    payload: ManualCaptureRequest,
    service: ManualCaptureService = Depends(get_manual_capture),
):
    """Store captured prices through the same upsert and change detection as scraped ones."""
    if not payload.entries:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing entries payload.")

    outcome = await service.capture(payload.entries)
    if outcome is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=SITE_NOT_CONFIGURED)
    return ManualCaptureResponse(ok=True, updated=outcome.updated, errors=outcome.errors)
