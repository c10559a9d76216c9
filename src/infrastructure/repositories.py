"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

``BookingRepository`` maps ``BookingModel`` rows to the ``Booking`` entity
and back.  Each call runs in its own short unit-of-work opened from the
session factory, which gives read-your-writes per booking row.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .models import BookingModel
from src.domain.entities import Booking, JourneyState, Location
from src.domain.enums import TRACKED_STATUSES, BookingStatus, JourneyStatus
from src.domain.pricing import FareBreakdown


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _location(lat: Optional[float], lng: Optional[float]) -> Optional[Location]:
    if lat is None or lng is None:
        return None
    return Location(lat, lng)


# ── Row <-> entity mapping ────────────────────────────────────────────


def to_entity(row: BookingModel) -> Booking:
    fare = None
    if row.total_fare is not None and row.rate_type is not None:
        fare = FareBreakdown(
            initial_charge=row.initial_charge,
            tariff_a=row.tariff_a,
            tariff_b=row.tariff_b,
            total_fare=row.total_fare,
            rate_type=row.rate_type,
            rate_name=row.rate_name or "",
            distance_km=row.distance_km or Decimal("0"),
            duration_minutes=row.duration_minutes or 0,
        )

    journey = None
    if row.journey_status is not None:
        journey = JourneyState(
            status=JourneyStatus(row.journey_status),
            driver_name=row.driver_name or "",
            vehicle_reg=row.vehicle_reg or "",
            pickup_timestamp=_aware(row.pickup_timestamp),
            completion_timestamp=_aware(row.completion_timestamp),
            actual_km_driven=row.actual_km_driven,
            actual_duration_minutes=row.actual_duration_minutes,
            driver_location=_location(row.driver_lat, row.driver_lng),
            override_granted=bool(row.override_granted),
        )

    return Booking(
        request_id=row.request_id,
        customer_name=row.customer_name or "",
        phone=row.phone or "",
        email=row.email or "",
        pickup_eircode=row.pickup_eircode or "",
        destination_eircode=row.destination_eircode or "",
        origin_address=row.origin_address or "",
        destination_address=row.destination_address or "",
        pickup_location=_location(row.pickup_lat, row.pickup_lng),
        destination_location=_location(row.destination_lat, row.destination_lng),
        distance_km=row.distance_km if row.distance_km is not None else Decimal("0"),
        duration_minutes=row.duration_minutes or 0,
        vehicle_type=row.vehicle_type or "",
        passenger_count=row.passenger_count or 1,
        scheduled_date=row.scheduled_date or "",
        scheduled_time=row.scheduled_time or "",
        fare=fare,
        status=BookingStatus(row.status),
        journey=journey,
        created_at=_aware(row.created_at),
    )


def apply_entity(row: BookingModel, booking: Booking) -> None:
    """Copy every mapped field onto *row*; unmapped columns are untouched."""
    row.customer_name = booking.customer_name
    row.phone = booking.phone
    row.email = booking.email
    row.pickup_eircode = booking.pickup_eircode
    row.destination_eircode = booking.destination_eircode
    row.origin_address = booking.origin_address
    row.destination_address = booking.destination_address
    row.pickup_lat = booking.pickup_location.latitude if booking.pickup_location else None
    row.pickup_lng = booking.pickup_location.longitude if booking.pickup_location else None
    dest = booking.destination_location
    row.destination_lat = dest.latitude if dest else None
    row.destination_lng = dest.longitude if dest else None
    row.distance_km = booking.distance_km
    row.duration_minutes = booking.duration_minutes
    row.vehicle_type = booking.vehicle_type
    row.passenger_count = booking.passenger_count
    row.scheduled_date = booking.scheduled_date
    row.scheduled_time = booking.scheduled_time
    row.status = booking.status

    fare = booking.fare
    if fare is not None:
        row.initial_charge = fare.initial_charge
        row.tariff_a = fare.tariff_a
        row.tariff_b = fare.tariff_b
        row.total_fare = fare.total_fare
        row.rate_type = fare.rate_type
        row.rate_name = fare.rate_name

    journey = booking.journey
    if journey is not None:
        row.journey_status = journey.status
        row.driver_name = journey.driver_name
        row.vehicle_reg = journey.vehicle_reg
        row.pickup_timestamp = journey.pickup_timestamp
        row.completion_timestamp = journey.completion_timestamp
        row.actual_km_driven = journey.actual_km_driven
        row.actual_duration_minutes = journey.actual_duration_minutes
        # live position is owned by update_driver_location while tracked
        if not journey.is_tracked:
            row.driver_lat = None
            row.driver_lng = None
        row.override_granted = journey.override_granted


# ── Repository ────────────────────────────────────────────────────────


class BookingRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def find(self, request_id: str) -> Optional[Booking]:
        async with self.session_factory() as session:
            row = await session.get(BookingModel, request_id)
            return to_entity(row) if row else None

    async def save(self, booking: Booking) -> None:
        """Upsert by ``request_id``."""
        async with self.session_factory() as session:
            async with session.begin():
                row = await session.get(BookingModel, booking.request_id)
                if row is None:
                    row = BookingModel(request_id=booking.request_id)
                    session.add(row)
                apply_entity(row, booking)

    async def update_driver_location(
        self, request_id: str, location: Location
    ) -> bool:
        """Write the live position, only while the journey is tracked.

        A stale fix that arrives after completion is therefore discarded
        instead of re-exposing the driver's location.
        """
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(BookingModel)
                    .where(BookingModel.request_id == request_id)
                    .where(BookingModel.journey_status.in_(list(TRACKED_STATUSES)))
                    .values(driver_lat=location.latitude, driver_lng=location.longitude)
                )
            return result.rowcount > 0

    async def list_tracked(self) -> list[Booking]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(BookingModel).where(
                    BookingModel.journey_status.in_(list(TRACKED_STATUSES))
                )
            )
            return [to_entity(row) for row in result.scalars().all()]

    async def list_for_driver(self, driver_name: str) -> list[Booking]:
        """Non-cancelled jobs assigned to *driver_name*, by pickup time."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(BookingModel)
                .where(BookingModel.driver_name.ilike(driver_name.strip()))
                .where(BookingModel.status != BookingStatus.CANCELLED)
                .order_by(BookingModel.scheduled_date, BookingModel.scheduled_time)
            )
            return [to_entity(row) for row in result.scalars().all()]
