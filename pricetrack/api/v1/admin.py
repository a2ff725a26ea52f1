"""Administrative endpoints."""

from fastapi import APIRouter, Depends

from pricetrack.dependencies import get_runs
from pricetrack.schemas import ResetResponse
from pricetrack.services.run_service import RunService

router = APIRouter()


@router.post("/reset", response_model=ResetResponse)
async def reset_runs(runs: RunService = Depends(get_runs)):
    """Mark runs stuck in 'running' as errored."""
    return ResetResponse(reset=await runs.reset_stuck_runs())
