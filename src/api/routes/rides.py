"""
Ride endpoints
==============

POST   /api/v1/rides                       -- publish a ride (driver)
GET    /api/v1/rides                       -- paginated list, newest first
GET    /api/v1/rides/search                -- search by place / coordinates
GET    /api/v1/rides/driver/mine           -- the calling driver's rides
GET    /api/v1/rides/vehicle/{vehicle_id}  -- rides of a vehicle
GET    /api/v1/rides/{ride_id}             -- one ride
PATCH  /api/v1/rides/{ride_id}             -- edit schedule / route / capacity
DELETE /api/v1/rides/{ride_id}             -- delete a ride without active bookings
GET    /api/v1/rides/{ride_id}/bookings    -- bookings of a ride (its driver)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import Caller, PageParams, get_caller, get_db, get_page_params
from src.api.middleware import limiter
from src.api.schemas import (
    BaseResponse,
    BookingResponse,
    PageResponse,
    RideCreateRequest,
    RideResponse,
    RideSearchResponse,
    RideUpdateRequest,
)
from src.config import settings
from src.services.bookings import BookingService
from src.services.rides import RideService
from src.services.search import RideSearchService

router = APIRouter(prefix="/rides", tags=["rides"])


def _ride(status_code: int, message: str, ride) -> BaseResponse[RideResponse]:
    return BaseResponse[RideResponse](
        status_code=status_code,
        message=message,
        data=RideResponse.model_validate(ride),
    )


def _page(message: str, page) -> BaseResponse[PageResponse[RideResponse]]:
    return BaseResponse[PageResponse[RideResponse]](
        message=message,
        data=PageResponse[RideResponse](
            data=[RideResponse.model_validate(r) for r in page.data],
            total=page.total,
            page=page.page,
            limit=page.limit,
        ),
    )


@router.post(
    "",
    status_code=201,
    response_model=BaseResponse[RideResponse],
    summary="Publish a ride",
)
@limiter.limit(settings.rate_limit)
async def create_ride(
    request: Request,
    body: RideCreateRequest,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    ride = await RideService(db).create_ride(
        driver_id=caller.user_id, **body.model_dump()
    )
    return _ride(201, "Ride created successfully", ride)


@router.get(
    "",
    response_model=BaseResponse[PageResponse[RideResponse]],
    summary="List rides (paginated, newest first)",
)
@limiter.limit(settings.rate_limit)
async def list_rides(
    request: Request,
    params: PageParams = Depends(get_page_params),
    db: AsyncSession = Depends(get_db),
):
    page = await RideService(db).list_rides(params.page, params.limit)
    return _page("Rides retrieved successfully", page)


@router.get(
    "/search",
    response_model=BaseResponse[RideSearchResponse],
    summary="Search rides by departure / destination",
    description=(
        "Case-insensitive match on ride departure and destination, optionally "
        "narrowed by coordinates. When nothing matches, rides whose stops "
        "match are returned instead and ``via_fallback`` is true."
    ),
)
@limiter.limit(settings.rate_limit)
async def search_rides(
    request: Request,
    depart: Optional[str] = Query(None, description="Departure place name"),
    destination: Optional[str] = Query(None, description="Destination place name"),
    departure_lat: Optional[float] = Query(None, ge=-90, le=90),
    departure_lng: Optional[float] = Query(None, ge=-180, le=180),
    destination_lat: Optional[float] = Query(None, ge=-90, le=90),
    destination_lng: Optional[float] = Query(None, ge=-180, le=180),
    params: PageParams = Depends(get_page_params),
    db: AsyncSession = Depends(get_db),
):
    result = await RideSearchService(db).search_rides(
        depart,
        destination,
        params.page,
        params.limit,
        departure_lat=departure_lat,
        departure_lng=departure_lng,
        destination_lat=destination_lat,
        destination_lng=destination_lng,
    )
    message = "Rides found via stops" if result.via_fallback else "Rides found successfully"
    return BaseResponse[RideSearchResponse](
        message=message,
        data=RideSearchResponse(
            data=[RideResponse.model_validate(r) for r in result.page.data],
            total=result.page.total,
            page=result.page.page,
            limit=result.page.limit,
            via_fallback=result.via_fallback,
        ),
    )


@router.get(
    "/driver/mine",
    response_model=BaseResponse[PageResponse[RideResponse]],
    summary="List the calling driver's rides",
)
@limiter.limit(settings.rate_limit)
async def list_my_rides(
    request: Request,
    params: PageParams = Depends(get_page_params),
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    page = await RideService(db).list_rides_by_driver(
        caller.user_id, params.page, params.limit
    )
    return _page("Driver rides retrieved successfully", page)


@router.get(
    "/vehicle/{vehicle_id}",
    response_model=BaseResponse[PageResponse[RideResponse]],
    summary="List the rides of a vehicle",
)
@limiter.limit(settings.rate_limit)
async def list_vehicle_rides(
    request: Request,
    vehicle_id: str,
    params: PageParams = Depends(get_page_params),
    db: AsyncSession = Depends(get_db),
):
    page = await RideService(db).list_rides_by_vehicle(
        vehicle_id, params.page, params.limit
    )
    return _page("Vehicle rides retrieved successfully", page)


@router.get(
    "/{ride_id}",
    response_model=BaseResponse[RideResponse],
    summary="Get one ride",
)
@limiter.limit(settings.rate_limit)
async def get_ride(
    request: Request,
    ride_id: str,
    db: AsyncSession = Depends(get_db),
):
    ride = await RideService(db).get_ride(ride_id)
    return _ride(200, "Ride retrieved successfully", ride)


@router.patch(
    "/{ride_id}",
    response_model=BaseResponse[RideResponse],
    summary="Edit a ride (its driver)",
    description=(
        "Partial update. Changing ``capacity`` shifts the free seats by the "
        "same amount and fails with 409 below the seats already booked."
    ),
)
@limiter.limit(settings.rate_limit)
async def update_ride(
    request: Request,
    ride_id: str,
    body: RideUpdateRequest,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    ride = await RideService(db).update_ride(
        caller.user_id, ride_id, body.model_dump(exclude_unset=True)
    )
    return _ride(200, "Ride updated successfully", ride)


@router.delete(
    "/{ride_id}",
    response_model=BaseResponse[RideResponse],
    summary="Delete a ride (its driver)",
    description="Refused with 409 while the ride has pending, confirmed or started bookings.",
)
@limiter.limit(settings.rate_limit)
async def delete_ride(
    request: Request,
    ride_id: str,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    ride = await RideService(db).delete_ride(caller.user_id, ride_id)
    return _ride(200, "Ride deleted successfully", ride)


@router.get(
    "/{ride_id}/bookings",
    response_model=BaseResponse[PageResponse[BookingResponse]],
    summary="List the bookings of a ride (its driver)",
)
@limiter.limit(settings.rate_limit)
async def list_ride_bookings(
    request: Request,
    ride_id: str,
    params: PageParams = Depends(get_page_params),
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    page = await BookingService(db).list_ride_bookings(
        caller.user_id, ride_id, params.page, params.limit
    )
    return BaseResponse[PageResponse[BookingResponse]](
        message="Ride bookings retrieved successfully",
        data=PageResponse[BookingResponse](
            data=[BookingResponse.model_validate(b) for b in page.data],
            total=page.total,
            page=page.page,
            limit=page.limit,
        ),
    )
