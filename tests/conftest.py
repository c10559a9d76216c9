"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The production ``BookingModel`` has no
PostgreSQL-only column types, so the real ``BookingRepository`` is used.
Redis is replaced by ``KeyedLock`` for journey locks and an ``AsyncMock``
notifier.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.domain.entities import Booking, Location
from src.domain.enums import BookingStatus
from src.domain.errors import ExternalServiceError
from src.domain.journey import JourneyStateMachine
from src.infrastructure.database import create_tables
from src.infrastructure.locks import KeyedLock
from src.infrastructure.repositories import BookingRepository
from src.workers.tracker import TrackerRegistry


TEST_DB_URL = "sqlite+aiosqlite://"

# Dublin Airport, and a point ~300 m / ~2 km away from it
AIRPORT = Location(53.4264, -6.2499)
NEAR_AIRPORT = Location(53.4291, -6.2499)
FAR_FROM_AIRPORT = Location(53.4444, -6.2499)

START = datetime(2026, 11, 3, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic, manually advanced UTC clock."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeGeocoder:
    def __init__(self, result: Optional[Location] = AIRPORT, fail: bool = False):
        self.result = result
        self.fail = fail
        self.queries: list[str] = []

    async def resolve_coordinates(self, address: str) -> Optional[Location]:
        self.queries.append(address)
        if self.fail:
            raise ExternalServiceError("geocoder unavailable")
        return self.result


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(engine)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def repository(session_factory) -> BookingRepository:
    return BookingRepository(session_factory)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def geocoder() -> FakeGeocoder:
    return FakeGeocoder()


@pytest.fixture
def notifier() -> AsyncMock:
    return AsyncMock()


@pytest_asyncio.fixture
async def trackers(repository, geocoder, clock) -> AsyncGenerator[TrackerRegistry, None]:
    registry = TrackerRegistry(
        repository, geocoder, clock=clock, tick_seconds=0.01, geocode_timeout=1.0
    )
    yield registry
    await registry.stop_all()


@pytest.fixture
def machine(repository, notifier, trackers, clock) -> JourneyStateMachine:
    return JourneyStateMachine(
        repository,
        notifier,
        KeyedLock(),
        trackers,
        clock=clock,
        radius_m=500.0,
        override_after_minutes=5,
    )


@pytest.fixture
def make_booking(repository):
    """Persist a confirmed booking and return it."""

    async def _make(request_id: str = "REQ-1", **overrides) -> Booking:
        fields = dict(
            request_id=request_id,
            customer_name="Aoife Byrne",
            phone="087 123 4567",
            email="aoife@example.com",
            pickup_eircode="D02 X285",
            destination_eircode="K67 F2K5",
            origin_address="St Stephen's Green, Dublin 2",
            destination_address="Dublin Airport, Terminal 2",
            destination_location=AIRPORT,
            distance_km=Decimal("16.0"),
            duration_minutes=25,
            vehicle_type="Executive Saloon",
            scheduled_date="2026-11-03",
            scheduled_time="10:30",
            status=BookingStatus.CONFIRMED,
        )
        fields.update(overrides)
        booking = Booking(**fields)
        await repository.save(booking)
        return booking

    return _make


@pytest.fixture
def assigned_booking(make_booking, machine):
    """Persist a booking with a driver assigned (journey idle)."""

    async def _make(request_id: str = "REQ-1", **overrides) -> Booking:
        await make_booking(request_id, **overrides)
        return await machine.assign(request_id, "Sean Redmond", "231-D-4567")

    return _make
