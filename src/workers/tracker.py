"""
Per-journey location tracking
=============================

One ``LocationTracker`` exists per booking while its journey is EN_ROUTE or
ON_BOARD.  ``TrackerRegistry`` owns them, keyed by request id, so every
timer is a cancellable asyncio task rather than client-side state.

Each tracker runs up to three things:

* **Fix consumer** -- GPS fixes are *pushed* (``push``) onto a bounded
  queue; the consumer keeps the latest position for the proximity gate and
  writes it to the booking on a best-effort basis.  Failed writes are
  logged and dropped, and fixes are last-write-wins.
* **Elapsed ticker** -- once the passenger is on board, reports elapsed
  minutes to registered observers every ``tick_seconds``.
* **Destination lookup** -- the destination is geocoded once, lazily, and
  cached for the life of the journey.  A failed lookup caches ``None`` so
  the gate fails open.

``stop`` cancels everything immediately.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime
from typing import Awaitable, Callable, Optional, Protocol

from src.domain.entities import Booking, Location
from src.domain.errors import ExternalServiceError

logger = logging.getLogger(__name__)

ElapsedObserver = Callable[[str, int], Awaitable[None]]

MAX_PENDING_FIXES = 32


class LocationStore(Protocol):
    async def update_driver_location(
        self, request_id: str, location: Location
    ) -> bool: ...


class Geocoder(Protocol):
    async def resolve_coordinates(self, address: str) -> Optional[Location]: ...


class LocationTracker:
    def __init__(
        self,
        request_id: str,
        destination_query: str,
        store: LocationStore,
        geocoder: Geocoder,
        *,
        observers: list[ElapsedObserver],
        clock: Callable[[], datetime],
        tick_seconds: float = 10.0,
        geocode_timeout: float = 10.0,
    ):
        self.request_id = request_id
        self.destination_query = destination_query
        self.store = store
        self.geocoder = geocoder
        self.observers = observers
        self.clock = clock
        self.tick_seconds = tick_seconds
        self.geocode_timeout = geocode_timeout

        self.latest: Optional[Location] = None
        self._queue: asyncio.Queue[Location] = asyncio.Queue(MAX_PENDING_FIXES)
        self._stop_event = asyncio.Event()
        self._consumer: Optional[asyncio.Task] = None
        self._ticker: Optional[asyncio.Task] = None
        self._destination: Optional[asyncio.Task] = None

    # ── Lifecycle ─────────────────────────────────────────────────────

    def start(self) -> None:
        if self._consumer is None:
            self._consumer = asyncio.create_task(
                self._consume(), name=f"tracker:{self.request_id}"
            )

    def start_ticker(self, pickup_timestamp: datetime) -> None:
        if self._ticker is None:
            self._ticker = asyncio.create_task(
                self._tick(pickup_timestamp), name=f"ticker:{self.request_id}"
            )

    async def stop(self) -> None:
        self._stop_event.set()
        tasks = [t for t in (self._consumer, self._ticker, self._destination) if t]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Tracker task for %s failed", self.request_id)
        self._consumer = self._ticker = self._destination = None

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    # ── Fixes ─────────────────────────────────────────────────────────

    def push(self, location: Location) -> bool:
        if self._stop_event.is_set():
            return False
        try:
            self._queue.put_nowait(location)
        except asyncio.QueueFull:
            # keep the freshest fix
            self._queue.get_nowait()
            self._queue.task_done()
            self._queue.put_nowait(location)
        return True

    async def _consume(self) -> None:
        while not self._stop_event.is_set():
            location = await self._queue.get()
            self.latest = location
            try:
                written = await self.store.update_driver_location(
                    self.request_id, location
                )
                if not written:
                    logger.debug("Fix for %s not written", self.request_id)
            except Exception as exc:
                logger.warning(
                    "Dropping location update for %s: %s", self.request_id, exc
                )
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued fix has been handled."""
        if self.running:
            await self._queue.join()

    # ── Elapsed ticker ────────────────────────────────────────────────

    def elapsed_minutes(self, pickup_timestamp: datetime) -> int:
        seconds = (self.clock() - pickup_timestamp).total_seconds()
        return max(0, math.floor(seconds / 60))

    async def _tick(self, pickup_timestamp: datetime) -> None:
        while not self._stop_event.is_set():
            elapsed = self.elapsed_minutes(pickup_timestamp)
            for observer in self.observers:
                try:
                    await observer(self.request_id, elapsed)
                except Exception:
                    logger.exception("Elapsed observer failed for %s", self.request_id)
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self.tick_seconds
                )
                break
            except asyncio.TimeoutError:
                pass  # next tick

    # ── Destination ───────────────────────────────────────────────────

    def prefetch_destination(self) -> None:
        if self._destination is None:
            self._destination = asyncio.create_task(
                self._resolve_destination(), name=f"geocode:{self.request_id}"
            )

    async def destination(self) -> Optional[Location]:
        self.prefetch_destination()
        return await asyncio.shield(self._destination)

    async def _resolve_destination(self) -> Optional[Location]:
        if not self.destination_query:
            return None
        try:
            return await asyncio.wait_for(
                self.geocoder.resolve_coordinates(self.destination_query),
                timeout=self.geocode_timeout,
            )
        except (ExternalServiceError, asyncio.TimeoutError) as exc:
            logger.warning(
                "Destination lookup failed for %s, proximity gate open: %s",
                self.request_id,
                exc,
            )
            return None


class TrackerRegistry:
    """Owns the trackers of every active journey in this process."""

    def __init__(
        self,
        store: LocationStore,
        geocoder: Geocoder,
        *,
        clock: Callable[[], datetime],
        tick_seconds: float = 10.0,
        geocode_timeout: float = 10.0,
    ):
        self.store = store
        self.geocoder = geocoder
        self.clock = clock
        self.tick_seconds = tick_seconds
        self.geocode_timeout = geocode_timeout
        self.observers: list[ElapsedObserver] = []
        self._trackers: dict[str, LocationTracker] = {}

    def add_observer(self, observer: ElapsedObserver) -> None:
        self.observers.append(observer)

    def get(self, request_id: str) -> Optional[LocationTracker]:
        return self._trackers.get(request_id)

    def _ensure(self, booking: Booking) -> LocationTracker:
        tracker = self._trackers.get(booking.request_id)
        if tracker is None:
            tracker = LocationTracker(
                booking.request_id,
                booking.destination_query,
                self.store,
                self.geocoder,
                observers=self.observers,
                clock=self.clock,
                tick_seconds=self.tick_seconds,
                geocode_timeout=self.geocode_timeout,
            )
            self._trackers[booking.request_id] = tracker
        return tracker

    async def start(self, booking: Booking) -> None:
        tracker = self._ensure(booking)
        if not tracker.running:
            tracker.start()
            logger.info("Tracking started for %s", booking.request_id)

    async def start_ticker(self, request_id: str, pickup_timestamp: datetime) -> None:
        tracker = self._trackers.get(request_id)
        if tracker is not None:
            tracker.start_ticker(pickup_timestamp)

    async def stop(self, request_id: str) -> None:
        tracker = self._trackers.pop(request_id, None)
        if tracker is not None:
            await tracker.stop()
            logger.info("Tracking stopped for %s", request_id)

    async def stop_all(self) -> None:
        for request_id in list(self._trackers):
            await self.stop(request_id)

    def latest_position(self, request_id: str) -> Optional[Location]:
        tracker = self._trackers.get(request_id)
        return tracker.latest if tracker else None

    def prefetch_destination(self, booking: Booking) -> None:
        self._ensure(booking).prefetch_destination()

    async def destination(self, booking: Booking) -> Optional[Location]:
        return await self._ensure(booking).destination()

    async def push(self, request_id: str, location: Location) -> bool:
        tracker = self._trackers.get(request_id)
        if tracker is None or not tracker.running:
            return False
        return tracker.push(location)

    def __len__(self) -> int:
        return len(self._trackers)
