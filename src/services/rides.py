"""
Ride management: create, edit, list and delete scheduled rides.

Seat accounting rules
---------------------
* A new ride starts with ``available_seats == capacity``.
* A capacity edit shifts ``available_seats`` by the same delta and is
  refused when the new capacity is below the seats already held.
* A ride with PENDING, CONFIRMED or STARTED bookings cannot be deleted;
  otherwise its terminal bookings are deleted with it.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.entities import normalise_stops
from src.domain.enums import UserRole
from src.domain.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
)
from src.domain.schedule import estimated_duration
from src.infrastructure.models import RideModel
from src.infrastructure.pagination import Page
from src.infrastructure.repositories import (
    BookingRepository,
    RideRepository,
    UserRepository,
)
from src.services.store import store_errors

logger = logging.getLogger(__name__)

# Route/schedule fields a driver may edit directly
EDITABLE_FIELDS = frozenset(
    {
        "vehicle_id",
        "departure",
        "destination",
        "departure_lat",
        "departure_lng",
        "destination_lat",
        "destination_lng",
        "departure_time",
        "estimated_arrival",
        "stops",
        "total_distance",
        "price",
        "disposition",
    }
)
REQUIRED_FIELDS = frozenset(
    {"vehicle_id", "departure", "destination", "departure_time", "stops"}
)


class RideService:
    def __init__(self, session: AsyncSession):
        self.rides = RideRepository(session)
        self.bookings = BookingRepository(session)
        self.users = UserRepository(session)

    async def create_ride(
        self,
        *,
        driver_id: str,
        vehicle_id: str,
        departure: str,
        destination: str,
        departure_time: datetime,
        capacity: int,
        estimated_arrival: Optional[datetime] = None,
        departure_lat: Optional[float] = None,
        departure_lng: Optional[float] = None,
        destination_lat: Optional[float] = None,
        destination_lng: Optional[float] = None,
        stops: Optional[list[dict[str, Any]]] = None,
        total_distance: Optional[float] = None,
        price: Optional[float] = None,
        disposition: Optional[str] = None,
    ) -> RideModel:
        async with store_errors("create_ride"):
            driver = await self.users.get_by_id(driver_id)
            if driver is None:
                raise NotFoundError("Driver not found", {"driver_id": driver_id})
            if UserRole(driver.role) != UserRole.DRIVER:
                raise ForbiddenError("Only drivers can publish rides")
            if capacity is None or capacity < 1:
                raise InvalidArgumentError("A ride needs at least one seat")

            ride = RideModel(
                driver_id=driver_id,
                vehicle_id=vehicle_id,
                departure=departure,
                destination=destination,
                departure_lat=departure_lat,
                departure_lng=departure_lng,
                destination_lat=destination_lat,
                destination_lng=destination_lng,
                departure_time=departure_time,
                estimated_arrival=estimated_arrival,
                estimated_duration=estimated_duration(departure_time, estimated_arrival),
                stops=normalise_stops(stops),
                total_distance=total_distance,
                price=price,
                disposition=disposition,
                capacity=capacity,
                available_seats=capacity,
            )
            ride = await self.rides.create(ride)
            logger.info("Ride %s created by driver %s (%d seats)", ride.id, driver_id, capacity)
            return ride

    async def update_ride(
        self, caller_id: str, ride_id: str, changes: dict[str, Any]
    ) -> RideModel:
        async with store_errors("update_ride"):
            ride = await self._owned_ride(caller_id, ride_id)

            for name, value in changes.items():
                if name not in EDITABLE_FIELDS:
                    continue
                if value is None and name in REQUIRED_FIELDS:
                    continue
                if name == "stops":
                    value = normalise_stops(value)
                setattr(ride, name, value)
            ride.estimated_duration = estimated_duration(
                ride.departure_time, ride.estimated_arrival
            )

            capacity = changes.get("capacity")
            if capacity is not None and capacity != ride.capacity:
                if capacity < 1:
                    raise InvalidArgumentError("A ride needs at least one seat")
                if not await self.rides.resize(ride_id, capacity):
                    raise ConflictError(
                        "Capacity is below the number of seats already booked",
                        {"capacity": capacity},
                    )

            return await self.rides.refresh(ride)

    async def get_ride(self, ride_id: str) -> RideModel:
        async with store_errors("get_ride"):
            ride = await self.rides.get_by_id(ride_id)
            if ride is None:
                raise NotFoundError("Ride not found", {"ride_id": ride_id})
            return ride

    async def list_rides(self, page: int, limit: int) -> Page:
        async with store_errors("list_rides"):
            return await self.rides.list_paginated(page, limit)

    async def list_rides_by_driver(self, driver_id: str, page: int, limit: int) -> Page:
        async with store_errors("list_rides_by_driver"):
            return await self.rides.list_by_driver(driver_id, page, limit)

    async def list_rides_by_vehicle(self, vehicle_id: str, page: int, limit: int) -> Page:
        async with store_errors("list_rides_by_vehicle"):
            return await self.rides.list_by_vehicle(vehicle_id, page, limit)

    async def delete_ride(self, caller_id: str, ride_id: str) -> RideModel:
        async with store_errors("delete_ride"):
            ride = await self._owned_ride(caller_id, ride_id, for_update=True)

            active = await self.bookings.count_active_for_ride(ride_id)
            if active:
                raise ConflictError(
                    "Ride still has active bookings", {"active_bookings": active}
                )

            removed = await self.bookings.delete_closed_for_ride(ride_id)
            if not await self.rides.delete_if_unbooked(ride):
                logger.warning("Ride %s gained a booking while being deleted", ride_id)
                raise ConflictError("Ride still has active bookings", {"ride_id": ride_id})
            logger.info("Ride %s deleted with %d closed bookings", ride_id, removed)
            return ride

    async def _owned_ride(
        self, caller_id: str, ride_id: str, for_update: bool = False
    ) -> RideModel:
        if for_update:
            ride = await self.rides.get_for_update(ride_id)
        else:
            ride = await self.rides.get_by_id(ride_id)
        if ride is None:
            raise NotFoundError("Ride not found", {"ride_id": ride_id})
        if ride.driver_id != caller_id:
            raise ForbiddenError("You are not the driver of this ride")
        return ride
