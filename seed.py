"""
Seed script -- populates the database with sample bookings for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 3 quoted bookings (standard, premium and special rate pickups)
  - 2 confirmed bookings assigned to a driver, journey idle
  - 1 completed booking with actual duration recorded
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from src.domain.entities import Booking, JourneyState, Location
from src.domain.enums import BookingStatus, JourneyStatus
from src.domain.pricing import FareEngine
from src.infrastructure.database import async_session_factory, create_tables, engine
from src.infrastructure.repositories import BookingRepository

DRIVER = "Sean Redmond"

BOOKINGS = [
    {
        "request_id": "REQ-1001",
        "customer_name": "Aoife Byrne",
        "phone": "087 123 4567",
        "email": "aoife@example.com",
        "pickup_eircode": "D02 X285",
        "destination_eircode": "K67 F2K5",
        "origin_address": "St Stephen's Green, Dublin 2",
        "destination_address": "Dublin Airport, Terminal 2",
        "destination": (53.4264, -6.2499),
        "distance_km": "16.0",
        "duration_minutes": 25,
        "date": "2026-11-03",
        "time": "10:30",
    },
    {
        "request_id": "REQ-1002",
        "customer_name": "Ciaran Walsh",
        "phone": "+353 86 555 0101",
        "email": "ciaran@example.com",
        "pickup_eircode": "A94 C6F3",
        "destination_eircode": "D01 F5P2",
        "origin_address": "Blackrock, Co. Dublin",
        "destination_address": "Connolly Station, Dublin 1",
        "destination": (53.3509, -6.2502),
        "distance_km": "9.4",
        "duration_minutes": 22,
        "date": "2026-11-07",
        "time": "21:15",
    },
    {
        "request_id": "REQ-1003",
        "customer_name": "Niamh Kelly",
        "phone": "0851112222",
        "email": "niamh@example.com",
        "pickup_eircode": "D04 T6X0",
        "destination_eircode": "W23 X7Y5",
        "origin_address": "Ballsbridge, Dublin 4",
        "destination_address": "Maynooth, Co. Kildare",
        "destination": (53.3813, -6.5918),
        "distance_km": "27.6",
        "duration_minutes": 38,
        "date": "2026-12-24",
        "time": "22:00",
    },
    {
        "request_id": "REQ-1004",
        "customer_name": "Darragh Murphy",
        "phone": "089 765 4321",
        "email": "darragh@example.com",
        "pickup_eircode": "D06 W9P8",
        "destination_eircode": "D02 VF25",
        "origin_address": "Rathmines, Dublin 6",
        "destination_address": "Aviva Stadium, Dublin 4",
        "destination": (53.3352, -6.2285),
        "distance_km": "4.2",
        "duration_minutes": 14,
        "date": "2026-11-12",
        "time": "18:45",
        "driver": DRIVER,
    },
    {
        "request_id": "REQ-1005",
        "customer_name": "Saoirse O'Neill",
        "phone": "083 246 8100",
        "email": "saoirse@example.com",
        "pickup_eircode": "D15 KX2Y",
        "destination_eircode": "K67 F2K5",
        "origin_address": "Blanchardstown, Dublin 15",
        "destination_address": "Dublin Airport, Terminal 1",
        "destination": None,
        "distance_km": "14.8",
        "duration_minutes": 21,
        "date": "2026-11-12",
        "time": "05:30",
        "driver": DRIVER,
    },
    {
        "request_id": "REQ-1006",
        "customer_name": "Eoin Doyle",
        "phone": "087 999 0000",
        "email": "eoin@example.com",
        "pickup_eircode": "D08 E9P6",
        "destination_eircode": "D02 R590",
        "origin_address": "Kilmainham, Dublin 8",
        "destination_address": "Grand Canal Dock, Dublin 2",
        "destination": (53.3398, -6.2381),
        "distance_km": "5.1",
        "duration_minutes": 16,
        "date": "2026-10-15",
        "time": "09:00",
        "driver": DRIVER,
        "completed_after": timedelta(minutes=17),
    },
]


def build_booking(data: dict, fares: FareEngine) -> Booking:
    destination = data["destination"]
    booking = Booking(
        request_id=data["request_id"],
        customer_name=data["customer_name"],
        phone=data["phone"],
        email=data["email"],
        pickup_eircode=data["pickup_eircode"],
        destination_eircode=data["destination_eircode"],
        origin_address=data["origin_address"],
        destination_address=data["destination_address"],
        destination_location=Location(*destination) if destination else None,
        distance_km=Decimal(data["distance_km"]),
        duration_minutes=data["duration_minutes"],
        vehicle_type="Executive Saloon",
        passenger_count=1,
        scheduled_date=data["date"],
        scheduled_time=data["time"],
        status=BookingStatus.QUOTED,
    )
    booking.fare = fares.quote(
        booking.distance_km, booking.duration_minutes, data["date"], data["time"]
    )

    if "driver" in data:
        booking.assign_driver(data["driver"], "231-D-4567")

    if "completed_after" in data:
        pickup = datetime.fromisoformat(f"{data['date']}T{data['time']}").replace(
            tzinfo=timezone.utc
        )
        completion = pickup + data["completed_after"]
        booking.journey = JourneyState(
            status=JourneyStatus.COMPLETED,
            driver_name=data["driver"],
            vehicle_reg="231-D-4567",
            pickup_timestamp=pickup,
            completion_timestamp=completion,
            actual_km_driven=booking.distance_km,
            actual_duration_minutes=round(data["completed_after"].total_seconds() / 60),
        )
        booking.status = BookingStatus.COMPLETED

    return booking


async def seed():
    await create_tables()

    repo = BookingRepository(async_session_factory)
    fares = FareEngine()

    for data in BOOKINGS:
        booking = build_booking(data, fares)
        await repo.save(booking)
        print(
            f"  {booking.request_id}: {booking.fare.rate_name} "
            f"EUR {booking.fare.total_fare} ({booking.status.value})"
        )

    print(f"\nSeeded {len(BOOKINGS)} bookings")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
