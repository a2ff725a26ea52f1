"""Scrape run trigger endpoint."""

from typing import Optional

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, status

from pricetrack.core.exceptions import ConfigurationError, RunInProgress
from pricetrack.dependencies import get_runs
from pricetrack.schemas import ErrorResponse, RunRequest, RunResponse
from pricetrack.services.run_service import RunService

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.post(
    "",
    response_model=RunResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def start_run(
    payload: Optional[RunRequest] = Body(None),
    runs: RunService = Depends(get_runs),
):
    """Start a scrape run and return immediately.

    Prices are ingested in the background while the runner works; poll
    ``GET /status`` for progress.
    """
    site_id = payload.site_id if payload else None
    try:
        started = await runs.start_run(site_id or None)
    except ConfigurationError as e:
        logger.info("run_rejected", site_id=site_id, reason=e.message)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except RunInProgress as e:
        logger.info("run_rejected", site_id=site_id, active_run_id=e.run_id, reason=e.message)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    return RunResponse(ok=True, count=started.count, site_id=started.site_id, run_id=started.run_id)
