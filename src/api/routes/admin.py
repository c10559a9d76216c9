"""
Admin / observability endpoints
===============================

GET /api/v1/admin/health -- liveness plus the number of tracked journeys
"""

from fastapi import APIRouter, Depends

from src.api.dependencies import get_trackers
from src.api.schemas import HealthResponse
from src.workers.tracker import TrackerRegistry

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(trackers: TrackerRegistry = Depends(get_trackers)):
    return HealthResponse(active_journeys=len(trackers))
