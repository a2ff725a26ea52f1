"""Pydantic schemas for the price tracker API and event stream."""

from pricetrack.schemas.common import CamelModel, ErrorResponse
from pricetrack.schemas.health import HealthCheckResponse
from pricetrack.schemas.runs import ResetResponse, RunRequest, RunResponse
from pricetrack.schemas.status import FeedItem, RunStatus, SiteList, StatusResponse
from pricetrack.schemas.manual import ManualCaptureRequest, ManualCaptureResponse, ManualLink, ManualLinksResponse
from pricetrack.schemas.events import LoginErrorEvent, PriceEvent, ScrapeErrorEvent

__all__ = [
    # Common
    "CamelModel",
    "ErrorResponse",
    "HealthCheckResponse",
    # Runs
    "RunRequest",
    "RunResponse",
    "ResetResponse",
    # Status
    "RunStatus",
    "FeedItem",
    "SiteList",
    "StatusResponse",
    # Manual capture
    "ManualLink",
    "ManualLinksResponse",
    "ManualCaptureRequest",
    "ManualCaptureResponse",
    # Event stream
    "PriceEvent",
    "ScrapeErrorEvent",
    "LoginErrorEvent",
]
