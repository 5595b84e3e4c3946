"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from src.domain.enums import BookingStatus

T = TypeVar("T")


# ── Requests ──────────────────────────────────────────────────────────


class StopPointIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    order: Optional[int] = Field(None, ge=0)
    arrival_time: Optional[datetime] = None


class RideCreateRequest(BaseModel):
    vehicle_id: str = Field(..., max_length=36)
    departure: str = Field(..., min_length=1, max_length=255)
    destination: str = Field(..., min_length=1, max_length=255)
    departure_lat: Optional[float] = Field(None, ge=-90, le=90)
    departure_lng: Optional[float] = Field(None, ge=-180, le=180)
    destination_lat: Optional[float] = Field(None, ge=-90, le=90)
    destination_lng: Optional[float] = Field(None, ge=-180, le=180)
    departure_time: datetime
    estimated_arrival: Optional[datetime] = None
    stops: list[StopPointIn] = []
    total_distance: Optional[float] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)
    disposition: Optional[str] = None
    capacity: int = Field(..., ge=1, le=100)


class RideUpdateRequest(BaseModel):
    vehicle_id: Optional[str] = Field(None, max_length=36)
    departure: Optional[str] = Field(None, min_length=1, max_length=255)
    destination: Optional[str] = Field(None, min_length=1, max_length=255)
    departure_lat: Optional[float] = Field(None, ge=-90, le=90)
    departure_lng: Optional[float] = Field(None, ge=-180, le=180)
    destination_lat: Optional[float] = Field(None, ge=-90, le=90)
    destination_lng: Optional[float] = Field(None, ge=-180, le=180)
    departure_time: Optional[datetime] = None
    estimated_arrival: Optional[datetime] = None
    stops: Optional[list[StopPointIn]] = None
    total_distance: Optional[float] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)
    disposition: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1, le=100)


class BookingCreateRequest(BaseModel):
    ride_id: str
    vehicle_type_id: Optional[str] = None
    price: float = Field(..., ge=0)


# ── Responses ─────────────────────────────────────────────────────────


class StopPointOut(BaseModel):
    name: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    order: int = 0
    arrival_time: Optional[datetime] = None


class RideResponse(BaseModel):
    id: str
    driver_id: str
    vehicle_id: str
    departure: str
    destination: str
    departure_lat: Optional[float] = None
    departure_lng: Optional[float] = None
    destination_lat: Optional[float] = None
    destination_lng: Optional[float] = None
    departure_time: datetime
    estimated_arrival: Optional[datetime] = None
    estimated_duration: str
    stops: list[StopPointOut] = []
    total_distance: Optional[float] = None
    price: Optional[float] = None
    disposition: Optional[str] = None
    capacity: int
    available_seats: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    id: str
    user_id: str
    ride_id: str
    vehicle_type_id: Optional[str] = None
    price: float
    status: BookingStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PageResponse(BaseModel, Generic[T]):
    data: list[T] = []
    total: int = 0
    page: int = 1
    limit: int = 10


class RideSearchResponse(PageResponse[RideResponse]):
    via_fallback: bool = False


class SeatAuditResponse(BaseModel):
    ride_id: str
    capacity: int
    available_seats: int
    active_bookings: int
    expected_available: int
    consistent: bool


class BaseResponse(BaseModel, Generic[T]):
    """Envelope returned by every endpoint, success or failure."""

    status_code: int = 200
    message: str = ""
    data: Optional[T] = None


class HealthResponse(BaseModel):
    status: str = "ok"
