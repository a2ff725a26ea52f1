"""API v1 router -- aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from pricetrack.api.v1 import admin, health, manual, runs, status

api_v1_router = APIRouter()

api_v1_router.include_router(health.router, tags=["health"])
api_v1_router.include_router(status.router, tags=["status"])
api_v1_router.include_router(runs.router, prefix="/runs", tags=["runs"])
api_v1_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_v1_router.include_router(manual.router, prefix="/manual", tags=["manual"])
