"""Domain error taxonomy shared by the state machine and the API layer."""

from __future__ import annotations

from typing import Optional


class DispatchError(Exception):
    """Base class for every error raised by the dispatch core."""


class ValidationError(DispatchError):
    """Malformed or missing input supplied by an upstream caller."""


class NotFoundError(DispatchError):
    """Unknown request id, or a booking with no driver assignment."""

    def __init__(self, request_id: str, what: str = "Booking"):
        self.request_id = request_id
        super().__init__(f"{what} {request_id} not found")


class InvalidStateTransition(DispatchError):
    """Raised when a journey status change violates the state machine."""


class NotReadyError(DispatchError):
    """The proximity gate refuses to let the journey complete yet.

    Not a hard failure: the caller may retry once the driver is closer, or
    after requesting the manual override.
    """

    def __init__(
        self,
        message: str,
        *,
        distance_remaining_m: Optional[float] = None,
        override_available: bool = False,
    ):
        self.distance_remaining_m = distance_remaining_m
        self.override_available = override_available
        super().__init__(message)


class ExternalServiceError(DispatchError):
    """Distance or geocoding provider failure."""
