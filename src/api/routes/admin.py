"""
Admin / observability endpoints
===============================

GET /api/v1/admin/health                     -- simple health check
GET /api/v1/admin/rides/{ride_id}/seat-audit -- stored vs recomputed free seats
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import Caller, get_caller, get_db
from src.api.middleware import limiter
from src.api.schemas import BaseResponse, HealthResponse, SeatAuditResponse
from src.config import settings
from src.services.seat_inventory import SeatInventory

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/rides/{ride_id}/seat-audit",
    response_model=BaseResponse[SeatAuditResponse],
    summary="Compare a ride's seat counter with its bookings",
)
@limiter.limit(settings.rate_limit)
async def seat_audit(
    request: Request,
    ride_id: str,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    audit = await SeatInventory(db).audit(ride_id)
    return BaseResponse[SeatAuditResponse](
        message="Seat counter consistent" if audit.consistent else "Seat counter drift detected",
        data=SeatAuditResponse(
            ride_id=audit.ride_id,
            capacity=audit.capacity,
            available_seats=audit.available_seats,
            active_bookings=audit.active_bookings,
            expected_available=audit.expected_available,
            consistent=audit.consistent,
        ),
    )


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
