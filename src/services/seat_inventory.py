"""
Seat Inventory
==============

Owns ``rides.available_seats``.

* ``reserve_seat`` -- one conditional ``UPDATE ... WHERE available_seats > 0``.
  The zero-check and the decrement are a single statement, so two
  requests racing for the last seat get exactly one success.
* ``release_seat`` -- atomic increment, no upper bound check.
* ``audit``        -- recompute the counter from bookings and compare.

All calls run inside the caller's session so they commit or roll back
together with the booking status write.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.entities import SeatAudit
from src.domain.exceptions import NoSeatsAvailableError, NotFoundError
from src.infrastructure.models import RideModel
from src.infrastructure.repositories import BookingRepository, RideRepository

logger = logging.getLogger(__name__)


class SeatInventory:
    def __init__(self, session: AsyncSession):
        self.rides = RideRepository(session)
        self.bookings = BookingRepository(session)

    async def reserve_seat(self, ride_id: str) -> RideModel:
        ride = await self.rides.get_by_id(ride_id)
        if ride is None:
            raise NotFoundError("Ride not found", {"ride_id": ride_id})

        if not await self.rides.decrement_seats(ride_id):
            raise NoSeatsAvailableError(
                "No seats available for this ride", {"ride_id": ride_id}
            )

        ride = await self.rides.refresh(ride)
        logger.debug("Seat reserved on ride %s (%d left)", ride_id, ride.available_seats)
        return ride

    async def release_seat(self, ride_id: str) -> None:
        if not await self.rides.increment_seats(ride_id):
            raise NotFoundError("Ride not found", {"ride_id": ride_id})
        logger.debug("Seat released on ride %s", ride_id)

    async def audit(self, ride_id: str) -> SeatAudit:
        ride = await self.rides.get_by_id(ride_id)
        if ride is None:
            raise NotFoundError("Ride not found", {"ride_id": ride_id})
        ride = await self.rides.refresh(ride)

        held = await self.bookings.count_non_cancelled_for_ride(ride_id)
        audit = SeatAudit(
            ride_id=ride_id,
            capacity=ride.capacity,
            available_seats=ride.available_seats,
            active_bookings=held,
        )
        if not audit.consistent:
            logger.warning(
                "Seat counter drift on ride %s: stored=%d expected=%d",
                ride_id,
                audit.available_seats,
                audit.expected_available,
            )
        return audit
