"""
Journey lifecycle state machine
===============================

    IDLE --start_journey--> EN_ROUTE --mark_on_board--> ON_BOARD --complete--> COMPLETED

* Every command is idempotent: re-issuing it once its target state has been
  reached is a no-op (no write, no duplicate notification).
* Preconditions are enforced: skipping a state, or going backwards, raises
  ``InvalidStateTransition``.
* Commands for the same booking are serialized through a per-booking lock.
* ``complete`` is gated by the ``ProximityGate``; a closed gate raises
  ``NotReadyError`` carrying the remaining distance.

Collaborators are injected so the state machine stays storage-agnostic:
the booking store, the notification composer, the per-booking lock
provider and the location tracker registry.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import AsyncContextManager, Callable, Optional, Protocol

from .entities import Booking, Location
from .enums import BookingStatus, JourneyStatus
from .errors import InvalidStateTransition, NotFoundError, NotReadyError
from .events import CustomerContact, DriverDeparted, JourneyCompleted, JourneyEvent
from .proximity import (
    DEFAULT_OVERRIDE_AFTER_MINUTES,
    DEFAULT_RADIUS_M,
    ProximityCheck,
    ProximityGate,
)

logger = logging.getLogger(__name__)


# ── Collaborator contracts ────────────────────────────────────────────


class BookingStore(Protocol):
    async def find(self, request_id: str) -> Optional[Booking]: ...

    async def save(self, booking: Booking) -> None: ...


class NotificationComposer(Protocol):
    async def notify(self, event: JourneyEvent) -> None: ...


class LockProvider(Protocol):
    def lock(self, key: str) -> AsyncContextManager: ...


class JourneyTracking(Protocol):
    async def start(self, booking: Booking) -> None: ...

    async def start_ticker(self, request_id: str, pickup_timestamp: datetime) -> None: ...

    async def stop(self, request_id: str) -> None: ...

    def latest_position(self, request_id: str) -> Optional[Location]: ...

    def prefetch_destination(self, booking: Booking) -> None: ...

    async def destination(self, booking: Booking) -> Optional[Location]: ...

    async def push(self, request_id: str, location: Location) -> bool: ...


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── State machine ─────────────────────────────────────────────────────


class JourneyStateMachine:
    def __init__(
        self,
        store: BookingStore,
        notifier: NotificationComposer,
        locks: LockProvider,
        tracking: JourneyTracking,
        *,
        clock: Callable[[], datetime] = utcnow,
        radius_m: float = DEFAULT_RADIUS_M,
        override_after_minutes: int = DEFAULT_OVERRIDE_AFTER_MINUTES,
        tracking_url_template: str = "/track/{request_id}",
    ):
        self.store = store
        self.notifier = notifier
        self.locks = locks
        self.tracking = tracking
        self.clock = clock
        self.radius_m = radius_m
        self.override_after_minutes = override_after_minutes
        self.tracking_url_template = tracking_url_template

    # ── Commands ──────────────────────────────────────────────────────

    async def assign(
        self, request_id: str, driver_name: str, vehicle_reg: str = ""
    ) -> Booking:
        """Create the journey at IDLE for a confirmed driver assignment."""
        async with self.locks.lock(request_id):
            booking = await self._load(request_id, require_journey=False)
            if booking.status == BookingStatus.CANCELLED:
                raise InvalidStateTransition(f"Booking {request_id} is cancelled")
            booking.assign_driver(driver_name, vehicle_reg)
            await self.store.save(booking)
        logger.info("Journey %s assigned to %s", request_id, driver_name)
        return booking

    async def start_journey(
        self,
        request_id: str,
        driver_name: Optional[str] = None,
        vehicle_reg: Optional[str] = None,
    ) -> Booking:
        async with self.locks.lock(request_id):
            booking = await self._load(request_id)
            journey = booking.journey
            if journey.status == JourneyStatus.EN_ROUTE:
                await self.tracking.start(booking)
                return booking
            if booking.status == BookingStatus.CANCELLED:
                raise InvalidStateTransition(f"Booking {request_id} is cancelled")

            journey.transition_to(JourneyStatus.EN_ROUTE)
            if driver_name:
                journey.driver_name = driver_name
            if vehicle_reg:
                journey.vehicle_reg = vehicle_reg
            await self.store.save(booking)
            await self.tracking.start(booking)

        logger.info("Journey %s en route (driver=%s)", request_id, journey.driver_name)
        await self._emit(
            DriverDeparted(
                request_id=request_id,
                occurred_at=self.clock(),
                tracking_reference=self.tracking_url_template.format(
                    request_id=request_id
                ),
                customer=self._contact(booking),
                driver_name=journey.driver_name,
                vehicle_reg=journey.vehicle_reg,
                vehicle_type=booking.vehicle_type,
                scheduled_date=booking.scheduled_date,
                scheduled_time=booking.scheduled_time,
            )
        )
        return booking

    async def mark_on_board(self, request_id: str) -> Booking:
        async with self.locks.lock(request_id):
            booking = await self._load(request_id)
            journey = booking.journey
            if journey.status == JourneyStatus.ON_BOARD:
                return booking

            journey.transition_to(JourneyStatus.ON_BOARD)
            journey.pickup_timestamp = self.clock()
            await self.store.save(booking)

            await self.tracking.start(booking)
            await self.tracking.start_ticker(request_id, journey.pickup_timestamp)
            if booking.destination_location is None:
                self.tracking.prefetch_destination(booking)

        logger.info("Journey %s passenger on board", request_id)
        return booking

    async def complete(self, request_id: str) -> Booking:
        async with self.locks.lock(request_id):
            booking = await self._load(request_id)
            journey = booking.journey
            if journey.status == JourneyStatus.COMPLETED:
                return booking
            if journey.status != JourneyStatus.ON_BOARD:
                raise InvalidStateTransition(
                    f"Cannot complete journey {request_id} from {journey.status.value}"
                )

            check = await self._check(booking)
            if not check.allowed:
                raise NotReadyError(
                    f"Cannot complete yet: {check.reason}",
                    distance_remaining_m=check.distance_remaining_m,
                    override_available=check.override_available,
                )

            now = self.clock()
            journey.transition_to(JourneyStatus.COMPLETED)
            journey.completion_timestamp = now
            if journey.pickup_timestamp is not None:
                elapsed = (now - journey.pickup_timestamp).total_seconds()
                journey.actual_duration_minutes = round(elapsed / 60)
            # planned distance stands in for the driven distance
            journey.actual_km_driven = booking.distance_km
            booking.status = BookingStatus.COMPLETED
            await self.store.save(booking)
            await self.tracking.stop(request_id)

        logger.info(
            "Journey %s completed in %s min",
            request_id,
            journey.actual_duration_minutes,
        )
        await self._emit(
            JourneyCompleted(
                request_id=request_id,
                occurred_at=now,
                pickup_timestamp=journey.pickup_timestamp,
                completion_timestamp=now,
                actual_duration_minutes=journey.actual_duration_minutes,
                customer=self._contact(booking),
                driver_name=journey.driver_name,
            )
        )
        return booking

    async def request_override(self, request_id: str) -> ProximityCheck:
        """Latch the manual proximity override (only after the wait period)."""
        async with self.locks.lock(request_id):
            booking = await self._load(request_id)
            journey = booking.journey
            if journey.status != JourneyStatus.ON_BOARD:
                raise InvalidStateTransition(
                    f"Override only applies on board, journey is {journey.status.value}"
                )
            if not journey.override_granted:
                gate = self._gate(booking)
                gate.grant_override(self._elapsed_minutes(booking))
                journey.override_granted = True
                await self.store.save(booking)
                logger.warning("Journey %s proximity override granted", request_id)
            return await self._check(booking)

    async def proximity(self, request_id: str) -> ProximityCheck:
        async with self.locks.lock(request_id):
            booking = await self._load(request_id)
            return await self._check(booking)

    async def record_location(self, request_id: str, location: Location) -> bool:
        """Forward a pushed GPS fix to the tracker.

        Returns False when the journey is not currently tracked; the fix is
        then dropped.
        """
        if await self.tracking.push(request_id, location):
            return True
        async with self.locks.lock(request_id):
            booking = await self._load(request_id)
            if not booking.journey.is_tracked:
                logger.debug("Dropping fix for untracked journey %s", request_id)
                return False
            # tracker lost (e.g. process restart): reattach and retry once
            await self.tracking.start(booking)
            return await self.tracking.push(request_id, location)

    async def resume(self, bookings: list[Booking]) -> int:
        """Reattach trackers for journeys that were active before a restart."""
        resumed = 0
        for booking in bookings:
            journey = booking.journey
            if journey is None or not journey.is_tracked:
                continue
            await self.tracking.start(booking)
            if journey.status == JourneyStatus.ON_BOARD and journey.pickup_timestamp:
                await self.tracking.start_ticker(
                    booking.request_id, journey.pickup_timestamp
                )
            resumed += 1
        if resumed:
            logger.info("Resumed tracking for %d active journeys", resumed)
        return resumed

    # ── Internals ─────────────────────────────────────────────────────

    async def _load(self, request_id: str, require_journey: bool = True) -> Booking:
        booking = await self.store.find(request_id)
        if booking is None:
            raise NotFoundError(request_id)
        if require_journey and booking.journey is None:
            raise NotFoundError(request_id, what="Driver assignment for booking")
        return booking

    def _gate(self, booking: Booking) -> ProximityGate:
        return ProximityGate(
            radius_m=self.radius_m,
            override_after_minutes=self.override_after_minutes,
            override_granted=booking.journey.override_granted,
        )

    def _elapsed_minutes(self, booking: Booking) -> int:
        pickup = booking.journey.pickup_timestamp
        if pickup is None:
            return 0
        return max(0, math.floor((self.clock() - pickup).total_seconds() / 60))

    async def _check(self, booking: Booking) -> ProximityCheck:
        journey = booking.journey
        driver_pos = (
            self.tracking.latest_position(booking.request_id)
            or journey.driver_location
        )
        dest_pos = booking.destination_location
        if dest_pos is None and journey.status == JourneyStatus.ON_BOARD:
            dest_pos = await self.tracking.destination(booking)
        return self._gate(booking).check(
            driver_pos, dest_pos, self._elapsed_minutes(booking)
        )

    @staticmethod
    def _contact(booking: Booking) -> CustomerContact:
        return CustomerContact(
            name=booking.customer_name, phone=booking.phone, email=booking.email
        )

    async def _emit(self, event: JourneyEvent) -> None:
        """Best-effort: a failed notification never undoes a transition."""
        try:
            await self.notifier.notify(event)
        except Exception:
            logger.exception(
                "Notification %s for %s failed", event.event_type, event.request_id
            )
