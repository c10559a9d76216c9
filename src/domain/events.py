"""Journey events handed to the notification composer."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class CustomerContact(BaseModel):
    name: str = ""
    phone: str = ""
    email: str = ""


class DriverDeparted(BaseModel):
    """Driver has started driving to the pickup point."""

    event_id: UUID = Field(default_factory=uuid4)
    event_type: Literal["journey.driver_departed"] = "journey.driver_departed"
    request_id: str
    occurred_at: datetime
    tracking_reference: str
    customer: CustomerContact
    driver_name: str
    vehicle_reg: str = ""
    vehicle_type: str = ""
    scheduled_date: str = ""
    scheduled_time: str = ""


class JourneyCompleted(BaseModel):
    """Passenger dropped off; time to ask for a review."""

    event_id: UUID = Field(default_factory=uuid4)
    event_type: Literal["journey.completed"] = "journey.completed"
    request_id: str
    occurred_at: datetime
    pickup_timestamp: Optional[datetime]
    completion_timestamp: datetime
    actual_duration_minutes: Optional[int]
    customer: CustomerContact
    driver_name: str


JourneyEvent = Union[DriverDeparted, JourneyCompleted]
