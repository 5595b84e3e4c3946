"""
Booking State Machine
=====================

PENDING -> CONFIRMED -> STARTED -> COMPLETED, with CANCELLED reachable from
PENDING (rider only) or CONFIRMED (rider or driver).

Every status-changing operation follows the same steps:

1. Load the booking, then its ride to recover ``driver_id``.
2. ``can_perform`` -- role and identity check (``ForbiddenError``).
3. ``next_status`` -- status precondition (``InvalidStateTransition``).
4. Compare-and-set the status; a concurrent writer that got there first
   makes the write affect zero rows (``ConflictError``).
5. On cancellation, release the seat in the same session.

Creation reserves the seat first, then inserts the PENDING booking.  The
caller's session is the unit of work: any exception rolls back both the
seat counter and the status.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.entities import next_status
from src.domain.enums import BookingOperation, BookingStatus, UserRole
from src.domain.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
)
from src.domain.permissions import can_perform, cancel_operation_for
from src.infrastructure.models import BookingModel
from src.infrastructure.pagination import Page
from src.infrastructure.repositories import BookingRepository, RideRepository
from src.services.seat_inventory import SeatInventory
from src.services.store import store_errors

logger = logging.getLogger(__name__)

_FORBIDDEN_MESSAGES = {
    BookingOperation.CREATE: "Only riders can book a seat",
    BookingOperation.VALIDATE: "You cannot validate this booking",
    BookingOperation.START: "You cannot start this booking",
    BookingOperation.COMPLETE: "You cannot complete this booking",
    BookingOperation.CANCEL_BY_RIDER: "You are not the owner of this booking",
    BookingOperation.CANCEL_BY_DRIVER: "You are not the driver of this ride",
}


def list_statuses() -> list[str]:
    return [status.value for status in BookingStatus]


class BookingService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.bookings = BookingRepository(session)
        self.rides = RideRepository(session)
        self.seats = SeatInventory(session)

    # ── Creation ──────────────────────────────────────────────────

    async def create_booking(
        self,
        user_id: str,
        ride_id: str,
        vehicle_type_id: Optional[str],
        price: float,
        *,
        role: UserRole = UserRole.USER,
        idempotency_key: Optional[str] = None,
    ) -> BookingModel:
        async with store_errors("create_booking"):
            if not can_perform(BookingOperation.CREATE, role, user_id):
                raise ForbiddenError(_FORBIDDEN_MESSAGES[BookingOperation.CREATE])
            if price is None or price < 0:
                raise InvalidArgumentError("Price must be a non-negative amount")

            if idempotency_key:
                existing = await self.bookings.get_by_idempotency_key(idempotency_key)
                if existing is not None:
                    if existing.user_id != user_id or existing.ride_id != ride_id:
                        raise ConflictError("Idempotency key already used for another booking")
                    logger.info("Replayed booking %s for key %s", existing.id, idempotency_key)
                    return existing

            await self.seats.reserve_seat(ride_id)

            booking = BookingModel(
                user_id=user_id,
                ride_id=ride_id,
                vehicle_type_id=vehicle_type_id,
                price=price,
                status=BookingStatus.PENDING,
                idempotency_key=idempotency_key,
            )
            try:
                async with self.session.begin_nested():
                    booking = await self.bookings.create(booking)
            except IntegrityError as exc:
                # Only a row now holding the key makes this a duplicate
                if idempotency_key and await self.bookings.get_by_idempotency_key(
                    idempotency_key
                ):
                    raise ConflictError("Duplicate booking request") from exc
                raise

            logger.info("Booking %s created on ride %s by %s", booking.id, ride_id, user_id)
            return booking

    # ── Driver transitions ────────────────────────────────────────

    async def validate_booking(
        self, driver_id: str, booking_id: str, role: UserRole = UserRole.DRIVER
    ) -> BookingModel:
        return await self._transition(BookingOperation.VALIDATE, driver_id, role, booking_id)

    async def start_booking(
        self, driver_id: str, booking_id: str, role: UserRole = UserRole.DRIVER
    ) -> BookingModel:
        return await self._transition(BookingOperation.START, driver_id, role, booking_id)

    async def complete_booking(
        self, driver_id: str, booking_id: str, role: UserRole = UserRole.DRIVER
    ) -> BookingModel:
        return await self._transition(BookingOperation.COMPLETE, driver_id, role, booking_id)

    async def cancel_booking(
        self, caller_id: str, role: UserRole, booking_id: str
    ) -> BookingModel:
        return await self._transition(cancel_operation_for(role), caller_id, role, booking_id)

    async def _transition(
        self,
        operation: BookingOperation,
        caller_id: str,
        role: UserRole,
        booking_id: str,
    ) -> BookingModel:
        async with store_errors(operation.value.lower()):
            booking = await self.bookings.get_by_id(booking_id)
            if booking is None:
                raise NotFoundError("Booking not found", {"booking_id": booking_id})

            ride = await self.rides.get_by_id(booking.ride_id)
            if ride is None:
                raise NotFoundError("Ride not found", {"ride_id": booking.ride_id})

            if not can_perform(
                operation,
                role,
                caller_id,
                rider_id=booking.user_id,
                driver_id=ride.driver_id,
            ):
                raise ForbiddenError(_FORBIDDEN_MESSAGES[operation])

            current = BookingStatus(booking.status)
            target = next_status(operation, current)

            if not await self.bookings.compare_and_set_status(booking, current, target):
                raise ConflictError(
                    "Booking was modified by another request", {"booking_id": booking_id}
                )

            if target == BookingStatus.CANCELLED:
                await self.seats.release_seat(ride.id)

            logger.info(
                "Booking %s %s -> %s by %s %s",
                booking_id,
                current.value,
                target.value,
                UserRole(role).value,
                caller_id,
            )
            return booking

    # ── Reads ─────────────────────────────────────────────────────

    async def get_booking(self, booking_id: str) -> BookingModel:
        async with store_errors("get_booking"):
            booking = await self.bookings.get_by_id(booking_id)
            if booking is None:
                raise NotFoundError("Booking not found", {"booking_id": booking_id})
            return booking

    async def list_bookings(self, page: int, limit: int) -> Page:
        async with store_errors("list_bookings"):
            return await self.bookings.list_paginated(page, limit)

    async def list_user_bookings(self, user_id: str, page: int, limit: int) -> Page:
        async with store_errors("list_user_bookings"):
            return await self.bookings.list_by_user(user_id, page, limit)

    async def list_ride_bookings(
        self, driver_id: str, ride_id: str, page: int, limit: int
    ) -> Page:
        async with store_errors("list_ride_bookings"):
            ride = await self.rides.get_by_id(ride_id)
            if ride is None:
                raise NotFoundError("Ride not found", {"ride_id": ride_id})
            if ride.driver_id != driver_id:
                raise ForbiddenError("You are not the driver of this ride")
            return await self.bookings.list_by_ride(ride_id, page, limit)
