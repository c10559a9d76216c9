"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``JourneyState``: enforces forward-only lifecycle
  transitions (IDLE -> EN_ROUTE -> ON_BOARD -> COMPLETED).
- ``JourneyState.clear_location`` keeps the privacy invariant in one place:
  the driver position is only held while the journey is being tracked.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .enums import (
    JOURNEY_TRANSITIONS,
    TRACKED_STATUSES,
    BookingStatus,
    JourneyStatus,
)
from .errors import InvalidStateTransition
from .pricing import FareBreakdown


# ── Value Object ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class JourneyState:
    status: JourneyStatus = JourneyStatus.IDLE
    driver_name: str = ""
    vehicle_reg: str = ""
    pickup_timestamp: Optional[datetime] = None
    completion_timestamp: Optional[datetime] = None
    actual_km_driven: Optional[Decimal] = None
    actual_duration_minutes: Optional[int] = None
    driver_location: Optional[Location] = None
    override_granted: bool = False

    @property
    def is_tracked(self) -> bool:
        return self.status in TRACKED_STATUSES

    def transition_to(self, new_status: JourneyStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        allowed = JOURNEY_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition journey from {self.status.value} "
                f"to {new_status.value}"
            )
        self.status = new_status
        if not self.is_tracked:
            self.clear_location()

    def clear_location(self) -> None:
        self.driver_location = None


@dataclass
class Booking:
    request_id: str
    customer_name: str = ""
    phone: str = ""
    email: str = ""
    pickup_eircode: str = ""
    destination_eircode: str = ""
    origin_address: str = ""
    destination_address: str = ""
    pickup_location: Optional[Location] = None
    destination_location: Optional[Location] = None
    distance_km: Decimal = Decimal("0")
    duration_minutes: int = 0
    vehicle_type: str = ""
    passenger_count: int = 1
    scheduled_date: str = ""
    scheduled_time: str = ""
    fare: Optional[FareBreakdown] = None
    status: BookingStatus = BookingStatus.REQUESTED
    journey: Optional[JourneyState] = None
    created_at: Optional[datetime] = None

    @property
    def destination_query(self) -> str:
        """Best available free-text destination for geocoding."""
        return self.destination_address or self.destination_eircode

    @property
    def journey_status(self) -> JourneyStatus:
        return self.journey.status if self.journey else JourneyStatus.IDLE

    def assign_driver(self, driver_name: str, vehicle_reg: str = "") -> JourneyState:
        """Create the journey at IDLE, or refresh the assignment while idle."""
        if self.journey is None:
            self.journey = JourneyState()
        elif self.journey.status != JourneyStatus.IDLE:
            raise InvalidStateTransition(
                f"Cannot reassign {self.request_id}: journey is "
                f"{self.journey.status.value}"
            )
        self.journey.driver_name = driver_name
        self.journey.vehicle_reg = vehicle_reg
        if self.status in (BookingStatus.REQUESTED, BookingStatus.QUOTED):
            self.status = BookingStatus.CONFIRMED
        return self.journey
