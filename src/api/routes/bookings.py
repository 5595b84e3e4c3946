"""
Booking endpoints
=================

POST  /api/v1/bookings                 -- book a seat (rider)
GET   /api/v1/bookings                 -- paginated list of all bookings
GET   /api/v1/bookings/mine            -- the caller's bookings
GET   /api/v1/bookings/statuses        -- the fixed status values
GET   /api/v1/bookings/{id}            -- one booking
PATCH /api/v1/bookings/{id}/validate   -- PENDING -> CONFIRMED (driver)
PATCH /api/v1/bookings/{id}/start      -- CONFIRMED -> STARTED (driver)
PATCH /api/v1/bookings/{id}/complete   -- STARTED -> COMPLETED (driver)
PATCH /api/v1/bookings/{id}/cancel     -- -> CANCELLED, frees the seat
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import Caller, PageParams, get_caller, get_db, get_page_params
from src.api.middleware import limiter
from src.api.schemas import (
    BaseResponse,
    BookingCreateRequest,
    BookingResponse,
    PageResponse,
)
from src.config import settings
from src.domain.enums import UserRole
from src.infrastructure.locks import idempotency_lock
from src.infrastructure.redis_client import get_redis
from src.services.bookings import BookingService, list_statuses

router = APIRouter(prefix="/bookings", tags=["bookings"])

_CANCEL_MESSAGES = {
    UserRole.USER: "Booking cancelled by the rider",
    UserRole.DRIVER: "Booking cancelled by the driver",
}


def _booking(status_code: int, message: str, booking) -> BaseResponse[BookingResponse]:
    return BaseResponse[BookingResponse](
        status_code=status_code,
        message=message,
        data=BookingResponse.model_validate(booking),
    )


def _page(message: str, page) -> BaseResponse[PageResponse[BookingResponse]]:
    return BaseResponse[PageResponse[BookingResponse]](
        message=message,
        data=PageResponse[BookingResponse](
            data=[BookingResponse.model_validate(b) for b in page.data],
            total=page.total,
            page=page.page,
            limit=page.limit,
        ),
    )


@router.post(
    "",
    status_code=201,
    response_model=BaseResponse[BookingResponse],
    summary="Book a seat on a ride",
    description=(
        "Reserves one seat and creates a PENDING booking. Send an "
        "``Idempotency-Key`` header to make client retries safe."
    ),
)
@limiter.limit(settings.rate_limit)
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    caller: Caller = Depends(get_caller),
    idempotency_key: Optional[str] = Header(None, max_length=64),
    db: AsyncSession = Depends(get_db),
):
    service = BookingService(db)
    args = (caller.user_id, body.ride_id, body.vehicle_type_id, body.price)

    if not idempotency_key:
        booking = await service.create_booking(*args, role=caller.role)
        return _booking(201, "Booking created successfully", booking)

    # Commit while holding the lock so a retry sees the stored key
    redis = await get_redis()
    async with idempotency_lock(redis, idempotency_key, settings.idempotency_lock_ttl_seconds):
        booking = await service.create_booking(
            *args, role=caller.role, idempotency_key=idempotency_key
        )
        await db.commit()
    return _booking(201, "Booking created successfully", booking)


@router.get(
    "",
    response_model=BaseResponse[PageResponse[BookingResponse]],
    summary="List bookings (paginated, newest first)",
)
@limiter.limit(settings.rate_limit)
async def list_bookings(
    request: Request,
    params: PageParams = Depends(get_page_params),
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    page = await BookingService(db).list_bookings(params.page, params.limit)
    return _page("Paginated bookings", page)


@router.get(
    "/mine",
    response_model=BaseResponse[PageResponse[BookingResponse]],
    summary="List the caller's bookings",
)
@limiter.limit(settings.rate_limit)
async def list_my_bookings(
    request: Request,
    params: PageParams = Depends(get_page_params),
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    page = await BookingService(db).list_user_bookings(
        caller.user_id, params.page, params.limit
    )
    return _page("Bookings of the user", page)


@router.get(
    "/statuses",
    response_model=BaseResponse[list[str]],
    summary="List every booking status",
)
@limiter.limit(settings.rate_limit)
async def get_statuses(request: Request):
    return BaseResponse[list[str]](message="Booking statuses", data=list_statuses())


@router.get(
    "/{booking_id}",
    response_model=BaseResponse[BookingResponse],
    summary="Get one booking",
)
@limiter.limit(settings.rate_limit)
async def get_booking(
    request: Request,
    booking_id: str,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    booking = await BookingService(db).get_booking(booking_id)
    return _booking(200, "Booking found", booking)


@router.patch(
    "/{booking_id}/validate",
    response_model=BaseResponse[BookingResponse],
    summary="Validate a booking (ride's driver)",
)
@limiter.limit(settings.rate_limit)
async def validate_booking(
    request: Request,
    booking_id: str,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    booking = await BookingService(db).validate_booking(
        caller.user_id, booking_id, role=caller.role
    )
    return _booking(200, "Booking validated successfully", booking)


@router.patch(
    "/{booking_id}/start",
    response_model=BaseResponse[BookingResponse],
    summary="Start a booking (ride's driver)",
)
@limiter.limit(settings.rate_limit)
async def start_booking(
    request: Request,
    booking_id: str,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    booking = await BookingService(db).start_booking(
        caller.user_id, booking_id, role=caller.role
    )
    return _booking(200, "Booking started successfully", booking)


@router.patch(
    "/{booking_id}/complete",
    response_model=BaseResponse[BookingResponse],
    summary="Complete a booking (ride's driver)",
)
@limiter.limit(settings.rate_limit)
async def complete_booking(
    request: Request,
    booking_id: str,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    booking = await BookingService(db).complete_booking(
        caller.user_id, booking_id, role=caller.role
    )
    return _booking(200, "Booking completed successfully", booking)


@router.patch(
    "/{booking_id}/cancel",
    response_model=BaseResponse[BookingResponse],
    summary="Cancel a booking (owner or ride's driver)",
    description=(
        "A rider may cancel a PENDING or CONFIRMED booking; the driver only "
        "a CONFIRMED one. The seat is released in the same transaction."
    ),
)
@limiter.limit(settings.rate_limit)
async def cancel_booking(
    request: Request,
    booking_id: str,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    booking = await BookingService(db).cancel_booking(
        caller.user_id, caller.role, booking_id
    )
    return _booking(200, _CANCEL_MESSAGES[caller.role], booking)
