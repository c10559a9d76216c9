"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``bookings`` -- one row per booking, carrying the quoted fare breakdown
  and the single journey assignment.

Columns that the dispatch core never reads (free-text query, owner fare
adjustments, reply preference) still live on the row; the repository only
writes the columns it maps, so those are preserved on every save.

Indexes
-------
* **B-Tree** on ``status`` and ``journey_status`` for the driver job list
  and for resuming active journeys after a restart.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)

from .database import Base
from src.domain.enums import BookingStatus, JourneyStatus, RateTier


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class BookingModel(Base):
    __tablename__ = "bookings"

    request_id = Column(String(32), primary_key=True)

    # Customer contact
    customer_name = Column(String(120), nullable=False, default="")
    phone = Column(String(32), nullable=False, default="")
    email = Column(String(255), nullable=False, default="")
    general_query = Column(Text, nullable=True)
    preferred_reply = Column(String(16), nullable=True)

    # Route
    pickup_eircode = Column(String(16), nullable=False, default="")
    destination_eircode = Column(String(16), nullable=False, default="")
    origin_address = Column(String(255), nullable=False, default="")
    destination_address = Column(String(255), nullable=False, default="")
    pickup_lat = Column(Float, nullable=True)
    pickup_lng = Column(Float, nullable=True)
    destination_lat = Column(Float, nullable=True)
    destination_lng = Column(Float, nullable=True)
    distance_km = Column(Numeric(8, 1), nullable=False, default=0)
    duration_minutes = Column(Integer, nullable=False, default=0)

    # Commercial
    vehicle_type = Column(String(64), nullable=False, default="")
    passenger_count = Column(Integer, nullable=False, default=1)
    scheduled_date = Column(String(10), nullable=False, default="")
    scheduled_time = Column(String(8), nullable=False, default="")
    status = Column(
        Enum(BookingStatus, values_callable=_enum_values, native_enum=False),
        default=BookingStatus.REQUESTED,
        nullable=False,
    )

    # Fare breakdown
    initial_charge = Column(Numeric(8, 2), nullable=True)
    tariff_a = Column(Numeric(8, 2), nullable=True)
    tariff_b = Column(Numeric(8, 2), nullable=True)
    total_fare = Column(Numeric(8, 2), nullable=True)
    rate_type = Column(
        Enum(RateTier, values_callable=_enum_values, native_enum=False),
        nullable=True,
    )
    rate_name = Column(String(80), nullable=True)
    adjusted_fare = Column(Numeric(8, 2), nullable=True)
    owner_fare = Column(Numeric(8, 2), nullable=True)

    # Journey
    journey_status = Column(
        Enum(JourneyStatus, values_callable=_enum_values, native_enum=False),
        nullable=True,
    )
    driver_name = Column(String(120), nullable=True)
    vehicle_reg = Column(String(16), nullable=True)
    pickup_timestamp = Column(DateTime(timezone=True), nullable=True)
    completion_timestamp = Column(DateTime(timezone=True), nullable=True)
    actual_km_driven = Column(Numeric(8, 1), nullable=True)
    actual_duration_minutes = Column(Integer, nullable=True)
    driver_lat = Column(Float, nullable=True)
    driver_lng = Column(Float, nullable=True)
    override_granted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_bookings_status", "status"),
        Index("idx_bookings_journey_status", "journey_status"),
        Index("idx_bookings_driver", "driver_name"),
    )
