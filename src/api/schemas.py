"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from src.domain.entities import Booking
from src.domain.enums import TRACKED_STATUSES
from src.domain.pricing import FareBreakdown
from src.domain.proximity import ProximityCheck


# ── Requests ──────────────────────────────────────────────────────────


class QuoteRequest(BaseModel):
    pickup_eircode: Optional[str] = Field(None, max_length=16)
    destination_eircode: Optional[str] = Field(None, max_length=16)
    distance_km: Optional[float] = Field(
        None, ge=0, description="Skip the route lookup and price this distance."
    )
    duration_minutes: Optional[int] = Field(None, ge=0)
    pickup_date: Optional[str] = Field(None, description="YYYY-MM-DD, local time")
    pickup_time: Optional[str] = Field(None, description="HH:MM, local time")

    @model_validator(mode="after")
    def _route_or_distance(self) -> "QuoteRequest":
        if self.distance_km is None and not (
            self.pickup_eircode and self.destination_eircode
        ):
            raise ValueError(
                "Provide distance_km, or both pickup_eircode and destination_eircode."
            )
        return self


class AssignDriverRequest(BaseModel):
    driver_name: str = Field(..., min_length=1, max_length=120)
    vehicle_reg: str = Field("", max_length=16)


class StartJourneyRequest(BaseModel):
    driver_name: Optional[str] = Field(None, max_length=120)
    vehicle_reg: Optional[str] = Field(None, max_length=16)


class LocationFix(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


# ── Responses ─────────────────────────────────────────────────────────


class FareResponse(BaseModel):
    initial_charge: float
    tariff_a: float
    tariff_b: float
    total_fare: float
    rate_type: str
    rate_name: str
    distance_km: float
    duration_minutes: int

    @classmethod
    def from_breakdown(cls, fare: FareBreakdown) -> "FareResponse":
        return cls(
            initial_charge=float(fare.initial_charge),
            tariff_a=float(fare.tariff_a),
            tariff_b=float(fare.tariff_b),
            total_fare=float(fare.total_fare),
            rate_type=fare.rate_type.value,
            rate_name=fare.rate_name,
            distance_km=float(fare.distance_km),
            duration_minutes=fare.duration_minutes,
        )


class RouteSummary(BaseModel):
    km: float
    minutes: int
    origin_address: str = ""
    destination_address: str = ""


class QuoteResponse(BaseModel):
    distance: RouteSummary
    fare: FareResponse


class JourneyResponse(BaseModel):
    request_id: str
    status: str
    journey_status: str
    driver_name: str = ""
    vehicle_reg: str = ""
    pickup_timestamp: Optional[datetime] = None
    completion_timestamp: Optional[datetime] = None
    actual_km_driven: Optional[float] = None
    actual_duration_minutes: Optional[int] = None
    driver_lat: Optional[float] = None
    driver_lng: Optional[float] = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "JourneyResponse":
        journey = booking.journey
        location = journey.driver_location if journey and journey.is_tracked else None
        return cls(
            request_id=booking.request_id,
            status=booking.status.value,
            journey_status=booking.journey_status.value,
            driver_name=journey.driver_name if journey else "",
            vehicle_reg=journey.vehicle_reg if journey else "",
            pickup_timestamp=journey.pickup_timestamp if journey else None,
            completion_timestamp=journey.completion_timestamp if journey else None,
            actual_km_driven=(
                float(journey.actual_km_driven)
                if journey and journey.actual_km_driven is not None
                else None
            ),
            actual_duration_minutes=journey.actual_duration_minutes if journey else None,
            driver_lat=location.latitude if location else None,
            driver_lng=location.longitude if location else None,
        )


class ProximityResponse(BaseModel):
    allowed: bool
    reason: str
    distance_remaining_m: Optional[float] = None
    override_available: bool
    override_granted: bool
    destination_known: bool

    @classmethod
    def from_check(cls, check: ProximityCheck) -> "ProximityResponse":
        return cls(
            allowed=check.allowed,
            reason=check.reason,
            distance_remaining_m=check.distance_remaining_m,
            override_available=check.override_available,
            override_granted=check.override_granted,
            destination_known=check.destination_known,
        )


class LocationAccepted(BaseModel):
    accepted: bool


class TrackingResponse(BaseModel):
    """Customer-facing tracking view.  No location unless the car is moving."""

    booking_id: str
    journey_status: str
    driver_name: str = ""
    vehicle_type: str = ""
    vehicle_reg: str = ""
    pickup_address: str = ""
    dest_address: str = ""
    pickup_timestamp: Optional[datetime] = None
    completion_timestamp: Optional[datetime] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    date: str = ""
    time: str = ""
    poll_seconds: int

    @classmethod
    def from_booking(cls, booking: Booking, poll_seconds: int) -> "TrackingResponse":
        journey = booking.journey
        active = journey is not None and journey.status in TRACKED_STATUSES
        location = journey.driver_location if active else None
        return cls(
            booking_id=booking.request_id,
            journey_status=booking.journey_status.value,
            driver_name=journey.driver_name if journey else "",
            vehicle_type=booking.vehicle_type,
            vehicle_reg=journey.vehicle_reg if journey else "",
            pickup_address=booking.origin_address or booking.pickup_eircode,
            dest_address=booking.destination_query,
            pickup_timestamp=journey.pickup_timestamp if journey else None,
            completion_timestamp=journey.completion_timestamp if journey else None,
            lat=location.latitude if location else None,
            lng=location.longitude if location else None,
            date=booking.scheduled_date if active else "",
            time=booking.scheduled_time if active else "",
            poll_seconds=poll_seconds,
        )


class DriverJobResponse(BaseModel):
    request_id: str
    customer_name: str
    pickup_address: str
    destination_address: str
    scheduled_date: str
    scheduled_time: str
    vehicle_type: str
    status: str
    journey_status: str
    total_fare: Optional[float] = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "DriverJobResponse":
        return cls(
            request_id=booking.request_id,
            customer_name=booking.customer_name,
            pickup_address=booking.origin_address or booking.pickup_eircode,
            destination_address=booking.destination_query,
            scheduled_date=booking.scheduled_date,
            scheduled_time=booking.scheduled_time,
            vehicle_type=booking.vehicle_type,
            status=booking.status.value,
            journey_status=booking.journey_status.value,
            total_fare=float(booking.fare.total_fare) if booking.fare else None,
        )


class HealthResponse(BaseModel):
    status: str = "ok"
    active_journeys: int = 0


class ErrorResponse(BaseModel):
    detail: str
