"""
Customer and driver read views
==============================

GET /api/v1/track/{request_id}        -- customer tracking page data
GET /api/v1/drivers/{driver_name}/jobs -- a driver's assigned jobs

The tracking view never exposes the driver's position unless the journey
is en route or on board.
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_repository
from src.api.middleware import limiter
from src.api.schemas import DriverJobResponse, TrackingResponse
from src.config import settings
from src.domain.errors import NotFoundError
from src.infrastructure.repositories import BookingRepository

router = APIRouter(tags=["tracking"])


@router.get(
    "/track/{request_id}",
    response_model=TrackingResponse,
    summary="Live tracking for a booking",
)
@limiter.limit("100/minute")
async def track_booking(
    request: Request,
    request_id: str,
    repo: BookingRepository = Depends(get_repository),
):
    booking = await repo.find(request_id)
    if booking is None:
        raise NotFoundError(request_id)
    return TrackingResponse.from_booking(booking, settings.tracking_poll_seconds)


@router.get(
    "/drivers/{driver_name}/jobs",
    response_model=list[DriverJobResponse],
    summary="Jobs assigned to a driver",
)
@limiter.limit("100/minute")
async def driver_jobs(
    request: Request,
    driver_name: str,
    repo: BookingRepository = Depends(get_repository),
):
    # URL slugs use hyphens for spaces
    name = driver_name.replace("-", " ")
    bookings = await repo.list_for_driver(name)
    return [DriverJobResponse.from_booking(b) for b in bookings]
