"""
Quote endpoint
==============

POST /api/v1/quotes -- NTA maximum fare for a route and pickup time
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_distance_provider, get_fare_engine
from src.api.middleware import limiter
from src.api.schemas import FareResponse, QuoteRequest, QuoteResponse, RouteSummary
from src.domain.pricing import FareEngine
from src.infrastructure.distance_provider import DistanceProvider

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post(
    "",
    response_model=QuoteResponse,
    summary="Quote the maximum fare",
    description=(
        "Looks up the driving route between two Eircodes (unless "
        "``distance_km`` is supplied), selects the tariff tier for the "
        "scheduled pickup and returns the fare breakdown."
    ),
)
@limiter.limit("30/minute")
async def create_quote(
    request: Request,
    body: QuoteRequest,
    engine: FareEngine = Depends(get_fare_engine),
    provider: DistanceProvider = Depends(get_distance_provider),
):
    if body.distance_km is not None:
        route = RouteSummary(
            km=body.distance_km,
            minutes=body.duration_minutes or 0,
            origin_address=body.pickup_eircode or "",
            destination_address=body.destination_eircode or "",
        )
    else:
        estimate = await provider.route(body.pickup_eircode, body.destination_eircode)
        route = RouteSummary(
            km=float(estimate.distance_km),
            minutes=estimate.duration_minutes,
            origin_address=estimate.origin_address,
            destination_address=estimate.destination_address,
        )

    fare = engine.quote(route.km, route.minutes, body.pickup_date, body.pickup_time)
    return QuoteResponse(distance=route, fare=FareResponse.from_breakdown(fare))
