"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``     -- riders and drivers (owned by the identity service)
* ``rides``     -- scheduled trips with a seat capacity and stops
* ``bookings``  -- one rider's claim on one seat of a ride

Invariant
---------
``rides.available_seats = rides.capacity - count(bookings of the ride whose
status is not CANCELLED)``.  Only the seat inventory and capacity edits
mutate ``available_seats``; the CHECK constraint rejects a negative counter.

Indexes
-------
* **B-Tree** on ``driver_id``, ``vehicle_id``, ``departure_time`` for ride
  listings and search ordering.
* **B-Tree** on ``ride_id``, ``user_id``, ``status`` for booking look-ups.
"""

import uuid

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)

from .database import Base
from src.domain.enums import BookingStatus, UserRole


def _uuid() -> str:
    return str(uuid.uuid4())


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    role = Column(Enum(UserRole), default=UserRole.USER, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(String(36), primary_key=True, default=_uuid)
    driver_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    vehicle_id = Column(String(36), nullable=False)

    departure = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    departure_lat = Column(Float, nullable=True)
    departure_lng = Column(Float, nullable=True)
    destination_lat = Column(Float, nullable=True)
    destination_lng = Column(Float, nullable=True)

    departure_time = Column(DateTime(timezone=True), nullable=False)
    estimated_arrival = Column(DateTime(timezone=True), nullable=True)
    estimated_duration = Column(String(8), default="00:00", nullable=False)

    # [{name, lat, lng, order, arrival_time}], ordered by ``order``
    stops = Column(JSON, default=list, nullable=False)
    total_distance = Column(Float, nullable=True)
    price = Column(Float, nullable=True)
    disposition = Column(Text, nullable=True)

    capacity = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("available_seats >= 0", name="ck_rides_available_seats"),
        CheckConstraint("capacity >= 1", name="ck_rides_capacity"),
        Index("idx_rides_driver", "driver_id"),
        Index("idx_rides_vehicle", "vehicle_id"),
        Index("idx_rides_departure_time", "departure_time"),
    )


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    ride_id = Column(String(36), ForeignKey("rides.id"), nullable=False)
    vehicle_type_id = Column(String(36), nullable=True)
    price = Column(Float, default=0.0, nullable=False)
    status = Column(Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False)
    idempotency_key = Column(String(64), unique=True, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_bookings_ride", "ride_id"),
        Index("idx_bookings_user", "user_id"),
        Index("idx_bookings_status", "status"),
    )
