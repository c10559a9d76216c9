"""Domain enumerations and state-transition rules."""

import enum


class BookingStatus(str, enum.Enum):
    REQUESTED = "Requested"
    QUOTED = "Quoted"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"


class JourneyStatus(str, enum.Enum):
    IDLE = "idle"
    EN_ROUTE = "en-route"
    ON_BOARD = "on-board"
    COMPLETED = "completed"


# State machine: maps current status -> the single valid next status
JOURNEY_TRANSITIONS: dict[JourneyStatus, set[JourneyStatus]] = {
    JourneyStatus.IDLE: {JourneyStatus.EN_ROUTE},
    JourneyStatus.EN_ROUTE: {JourneyStatus.ON_BOARD},
    JourneyStatus.ON_BOARD: {JourneyStatus.COMPLETED},
    JourneyStatus.COMPLETED: set(),
}

# Location is only shared while the driver is actually moving
TRACKED_STATUSES = frozenset({JourneyStatus.EN_ROUTE, JourneyStatus.ON_BOARD})


class RateTier(str, enum.Enum):
    STANDARD = "Standard"
    PREMIUM = "Premium"
    SPECIAL = "Special"
