"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Counter and status mutations are single
conditional ``UPDATE`` statements so concurrent requests are arbitrated
by the database, never by a read-then-write in Python.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import BookingModel, RideModel, UserModel
from .pagination import Page, paginate
from src.domain.enums import ACTIVE_STATUSES, TERMINAL_STATUSES, BookingStatus
from src.domain.search import SearchCriterion


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ride: RideModel) -> RideModel:
        self.session.add(ride)
        await self.session.flush()
        await self.session.refresh(ride)
        return ride

    async def get_by_id(self, ride_id: str) -> Optional[RideModel]:
        return await self.session.get(RideModel, ride_id)

    async def refresh(self, ride: RideModel) -> RideModel:
        """Flush pending edits, then reload counters written by ``UPDATE``."""
        await self.session.flush()
        await self.session.refresh(ride)
        return ride

    async def get_for_update(self, ride_id: str) -> Optional[RideModel]:
        """Load the ride holding its row lock until the transaction ends.

        ``reserve_seat`` updates the same row, so bookings racing a delete
        wait for it instead of slipping in between check and delete.
        """
        result = await self.session.execute(
            select(RideModel).where(RideModel.id == ride_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def delete_if_unbooked(self, ride: RideModel) -> bool:
        """Delete the ride only if no booking references it.  True on success."""
        result = await self.session.execute(
            delete(RideModel)
            .where(
                RideModel.id == ride.id,
                ~select(BookingModel.id).where(BookingModel.ride_id == ride.id).exists(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        self.session.expunge(ride)
        return True

    # ── Seat counter ──────────────────────────────────────────────

    async def decrement_seats(self, ride_id: str) -> bool:
        """``available_seats -= 1`` only if a seat is left.  True on success."""
        result = await self.session.execute(
            update(RideModel)
            .where(RideModel.id == ride_id, RideModel.available_seats > 0)
            .values(available_seats=RideModel.available_seats - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def increment_seats(self, ride_id: str, by: int = 1) -> bool:
        result = await self.session.execute(
            update(RideModel)
            .where(RideModel.id == ride_id)
            .values(available_seats=RideModel.available_seats + by)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def resize(self, ride_id: str, new_capacity: int) -> bool:
        """Shift capacity and free seats by the same delta in one statement.

        Refused (False) when the seats already held exceed *new_capacity*.
        """
        result = await self.session.execute(
            update(RideModel)
            .where(
                RideModel.id == ride_id,
                RideModel.capacity - RideModel.available_seats <= new_capacity,
            )
            .values(
                available_seats=RideModel.available_seats + (new_capacity - RideModel.capacity),
                capacity=new_capacity,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ── Listings ──────────────────────────────────────────────────

    async def list_paginated(self, page: int, limit: int) -> Page:
        query = select(RideModel).order_by(RideModel.created_at.desc(), RideModel.id)
        return await paginate(self.session, query, page, limit)

    async def list_by_driver(self, driver_id: str, page: int, limit: int) -> Page:
        query = (
            select(RideModel)
            .where(RideModel.driver_id == driver_id)
            .order_by(RideModel.departure_time.desc(), RideModel.id)
        )
        return await paginate(self.session, query, page, limit)

    async def list_by_vehicle(self, vehicle_id: str, page: int, limit: int) -> Page:
        query = (
            select(RideModel)
            .where(RideModel.vehicle_id == vehicle_id)
            .order_by(RideModel.departure_time.desc(), RideModel.id)
        )
        return await paginate(self.session, query, page, limit)

    # ── Search ────────────────────────────────────────────────────

    async def search(
        self,
        departure: SearchCriterion,
        destination: SearchCriterion,
        tolerance: float,
        page: int,
        limit: int,
    ) -> Page:
        """Primary search: substring on names, +/- window on coordinates."""
        query = select(RideModel)
        for criterion, name_col, lat_col, lng_col in (
            (departure, RideModel.departure, RideModel.departure_lat, RideModel.departure_lng),
            (destination, RideModel.destination, RideModel.destination_lat, RideModel.destination_lng),
        ):
            if criterion.term:
                query = query.where(
                    name_col.icontains(criterion.term, autoescape=True)
                )
            if criterion.point is not None:
                query = query.where(
                    lat_col.between(criterion.point.lat - tolerance, criterion.point.lat + tolerance),
                    lng_col.between(criterion.point.lng - tolerance, criterion.point.lng + tolerance),
                )
        query = query.order_by(RideModel.departure_time.desc(), RideModel.id)
        return await paginate(self.session, query, page, limit)

    async def list_all_by_departure(self) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel).order_by(RideModel.departure_time.desc(), RideModel.id)
        )
        return list(result.scalars().all())


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, booking: BookingModel) -> BookingModel:
        self.session.add(booking)
        await self.session.flush()
        await self.session.refresh(booking)
        return booking

    async def get_by_id(self, booking_id: str) -> Optional[BookingModel]:
        return await self.session.get(BookingModel, booking_id)

    async def get_by_idempotency_key(self, key: str) -> Optional[BookingModel]:
        result = await self.session.execute(
            select(BookingModel).where(BookingModel.idempotency_key == key)
        )
        return result.scalar_one_or_none()

    async def compare_and_set_status(
        self, booking: BookingModel, expected: BookingStatus, new: BookingStatus
    ) -> bool:
        """Write *new* only if the row still holds *expected*."""
        result = await self.session.execute(
            update(BookingModel)
            .where(BookingModel.id == booking.id, BookingModel.status == expected)
            .values(status=new, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        await self.session.refresh(booking)
        return True

    async def count_active_for_ride(self, ride_id: str) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(BookingModel)
            .where(
                BookingModel.ride_id == ride_id,
                BookingModel.status.in_(list(ACTIVE_STATUSES)),
            )
        )
        return result.scalar() or 0

    async def count_non_cancelled_for_ride(self, ride_id: str) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(BookingModel)
            .where(
                BookingModel.ride_id == ride_id,
                BookingModel.status != BookingStatus.CANCELLED,
            )
        )
        return result.scalar() or 0

    async def delete_closed_for_ride(self, ride_id: str) -> int:
        """Delete the ride's COMPLETED and CANCELLED bookings; active ones stay."""
        result = await self.session.execute(
            delete(BookingModel)
            .where(
                BookingModel.ride_id == ride_id,
                BookingModel.status.in_(list(TERMINAL_STATUSES)),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def list_paginated(self, page: int, limit: int) -> Page:
        query = select(BookingModel).order_by(BookingModel.created_at.desc(), BookingModel.id)
        return await paginate(self.session, query, page, limit)

    async def list_by_user(self, user_id: str, page: int, limit: int) -> Page:
        query = (
            select(BookingModel)
            .where(BookingModel.user_id == user_id)
            .order_by(BookingModel.created_at.desc(), BookingModel.id)
        )
        return await paginate(self.session, query, page, limit)

    async def list_by_ride(self, ride_id: str, page: int, limit: int) -> Page:
        query = (
            select(BookingModel)
            .where(BookingModel.ride_id == ride_id)
            .order_by(BookingModel.created_at.desc(), BookingModel.id)
        )
        return await paginate(self.session, query, page, limit)


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: str) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)
