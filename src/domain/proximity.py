"""
Arrival proximity gate.

A journey may only be completed once the driver is within
``radius_m`` (default 500 m) of the destination.  Two escape hatches exist:

* **Fail-open** -- if the destination could not be geocoded the gate is
  open, so a geocoding outage never blocks job completion.
* **Manual override** -- after ``override_after_minutes`` on board the
  driver may latch an override (GPS can be inaccurate near buildings).
  Once granted it is never cleared for that journey.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .distance import haversine_m
from .entities import Location
from .errors import NotReadyError

DEFAULT_RADIUS_M = 500.0
DEFAULT_OVERRIDE_AFTER_MINUTES = 5


def raw_distance_m(a: Location, b: Location) -> float:
    return haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)


def distance_between_m(a: Location, b: Location) -> float:
    # decimetre precision, as shown to the driver
    return round(raw_distance_m(a, b), 1)


def can_complete(
    driver_pos: Optional[Location],
    dest_pos: Optional[Location],
    override_flag: bool,
    elapsed_minutes_on_board: int = 0,
    radius_m: float = DEFAULT_RADIUS_M,
) -> bool:
    """Pure form of the gate.

    *elapsed_minutes_on_board* only matters for granting the override, not
    for honouring one already latched, so it does not change the verdict.
    """
    if dest_pos is None:
        return True
    if override_flag:
        return True
    if driver_pos is None:
        return False
    return raw_distance_m(driver_pos, dest_pos) <= radius_m


@dataclass(frozen=True)
class ProximityCheck:
    allowed: bool
    distance_remaining_m: Optional[float]
    override_available: bool
    override_granted: bool
    destination_known: bool

    @property
    def reason(self) -> str:
        if self.allowed:
            return "ready"
        if self.distance_remaining_m is None:
            return "waiting for a GPS position"
        return f"{self.distance_remaining_m:.0f} m from destination"


class ProximityGate:
    """Per-journey gate holding the one-way override latch."""

    def __init__(
        self,
        radius_m: float = DEFAULT_RADIUS_M,
        override_after_minutes: int = DEFAULT_OVERRIDE_AFTER_MINUTES,
        override_granted: bool = False,
    ):
        self.radius_m = radius_m
        self.override_after_minutes = override_after_minutes
        self._override = override_granted

    @property
    def override_granted(self) -> bool:
        return self._override

    def override_available(self, elapsed_minutes_on_board: int) -> bool:
        return elapsed_minutes_on_board >= self.override_after_minutes

    def grant_override(self, elapsed_minutes_on_board: int) -> None:
        if self._override:
            return
        if not self.override_available(elapsed_minutes_on_board):
            remaining = self.override_after_minutes - elapsed_minutes_on_board
            raise NotReadyError(
                f"Override available in {remaining} min",
                override_available=False,
            )
        self._override = True

    def check(
        self,
        driver_pos: Optional[Location],
        dest_pos: Optional[Location],
        elapsed_minutes_on_board: int,
    ) -> ProximityCheck:
        remaining: Optional[float] = None
        if driver_pos is not None and dest_pos is not None:
            remaining = distance_between_m(driver_pos, dest_pos)
        return ProximityCheck(
            allowed=can_complete(
                driver_pos,
                dest_pos,
                self._override,
                elapsed_minutes_on_board,
                radius_m=self.radius_m,
            ),
            distance_remaining_m=remaining,
            override_available=self.override_available(elapsed_minutes_on_board),
            override_granted=self._override,
            destination_known=dest_pos is not None,
        )
