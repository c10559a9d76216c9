"""
Journey endpoints (driver app)
==============================

POST /api/v1/journeys/{request_id}/assign     -- assign driver, journey IDLE
POST /api/v1/journeys/{request_id}/start      -- IDLE -> EN_ROUTE
POST /api/v1/journeys/{request_id}/on-board   -- EN_ROUTE -> ON_BOARD
POST /api/v1/journeys/{request_id}/complete   -- ON_BOARD -> COMPLETED (gated)
POST /api/v1/journeys/{request_id}/override   -- latch the proximity override
POST /api/v1/journeys/{request_id}/location   -- push a GPS fix
GET  /api/v1/journeys/{request_id}            -- journey state
GET  /api/v1/journeys/{request_id}/proximity  -- current gate verdict

All transition commands are idempotent, so clients may safely retry them.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_repository, get_state_machine
from src.api.middleware import limiter
from src.api.schemas import (
    AssignDriverRequest,
    JourneyResponse,
    LocationAccepted,
    LocationFix,
    ProximityResponse,
    StartJourneyRequest,
)
from src.domain.entities import Location
from src.domain.errors import NotFoundError
from src.domain.journey import JourneyStateMachine
from src.infrastructure.repositories import BookingRepository

router = APIRouter(prefix="/journeys", tags=["journeys"])


@router.get("/{request_id}", response_model=JourneyResponse, summary="Journey state")
@limiter.limit("100/minute")
async def get_journey(
    request: Request,
    request_id: str,
    repo: BookingRepository = Depends(get_repository),
):
    booking = await repo.find(request_id)
    if booking is None:
        raise NotFoundError(request_id)
    return JourneyResponse.from_booking(booking)


@router.post(
    "/{request_id}/assign",
    response_model=JourneyResponse,
    summary="Assign a driver and vehicle",
)
@limiter.limit("100/minute")
async def assign_driver(
    request: Request,
    request_id: str,
    body: AssignDriverRequest,
    machine: JourneyStateMachine = Depends(get_state_machine),
):
    booking = await machine.assign(request_id, body.driver_name, body.vehicle_reg)
    return JourneyResponse.from_booking(booking)


@router.post(
    "/{request_id}/start",
    response_model=JourneyResponse,
    summary="Driver departs for the pickup",
)
@limiter.limit("100/minute")
async def start_journey(
    request: Request,
    request_id: str,
    body: Optional[StartJourneyRequest] = None,
    machine: JourneyStateMachine = Depends(get_state_machine),
):
    body = body or StartJourneyRequest()
    booking = await machine.start_journey(
        request_id, driver_name=body.driver_name, vehicle_reg=body.vehicle_reg
    )
    return JourneyResponse.from_booking(booking)


@router.post(
    "/{request_id}/on-board",
    response_model=JourneyResponse,
    summary="Passenger collected",
)
@limiter.limit("100/minute")
async def mark_on_board(
    request: Request,
    request_id: str,
    machine: JourneyStateMachine = Depends(get_state_machine),
):
    booking = await machine.mark_on_board(request_id)
    return JourneyResponse.from_booking(booking)


@router.post(
    "/{request_id}/complete",
    response_model=JourneyResponse,
    summary="Drop-off; requires proximity to the destination",
    responses={409: {"description": "Too far from destination, or wrong state."}},
)
@limiter.limit("100/minute")
async def complete_journey(
    request: Request,
    request_id: str,
    machine: JourneyStateMachine = Depends(get_state_machine),
):
    booking = await machine.complete(request_id)
    return JourneyResponse.from_booking(booking)


@router.post(
    "/{request_id}/override",
    response_model=ProximityResponse,
    summary="Latch the manual proximity override",
    description="Available once the passenger has been on board for the configured wait.",
)
@limiter.limit("100/minute")
async def request_override(
    request: Request,
    request_id: str,
    machine: JourneyStateMachine = Depends(get_state_machine),
):
    check = await machine.request_override(request_id)
    return ProximityResponse.from_check(check)


@router.get(
    "/{request_id}/proximity",
    response_model=ProximityResponse,
    summary="Whether the journey may be completed now",
)
@limiter.limit("100/minute")
async def get_proximity(
    request: Request,
    request_id: str,
    machine: JourneyStateMachine = Depends(get_state_machine),
):
    check = await machine.proximity(request_id)
    return ProximityResponse.from_check(check)


@router.post(
    "/{request_id}/location",
    status_code=202,
    response_model=LocationAccepted,
    summary="Push the driver's current GPS fix",
)
@limiter.limit("600/minute")
async def push_location(
    request: Request,
    request_id: str,
    body: LocationFix,
    machine: JourneyStateMachine = Depends(get_state_machine),
):
    accepted = await machine.record_location(request_id, Location(body.lat, body.lng))
    return LocationAccepted(accepted=accepted)
