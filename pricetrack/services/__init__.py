"""Services module for business logic and data operations.

Services own the database-facing side of the tracker: ingesting price
events, starting and supervising runs, and the read models behind the
dashboard.
"""

from pricetrack.services.ingestion_service import IngestionPipeline, PriceObservation
from pricetrack.services.run_service import RunService, get_run_service
from pricetrack.services.status_service import StatusService
from pricetrack.services.manual_capture_service import ManualCaptureService

__all__ = [
    "IngestionPipeline",
    "PriceObservation",
    "RunService",
    "get_run_service",
    "StatusService",
    "ManualCaptureService",
]
