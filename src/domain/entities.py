"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on bookings: ``next_status`` enforces valid lifecycle
  transitions (PENDING -> CONFIRMED -> STARTED -> COMPLETED, CANCELLED from
  PENDING or CONFIRMED) through the operation table in ``permissions``.
- ``SeatAudit`` captures the seat-conservation invariant of a ride.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from .enums import BOOKING_TRANSITIONS, BookingOperation, BookingStatus
from .exceptions import InvalidStateTransition
from .permissions import BOOKING_RULES


def next_status(operation: BookingOperation, current: BookingStatus) -> BookingStatus:
    """Return the status *operation* leads to from *current*, else raise."""
    rule = BOOKING_RULES[operation]
    current = BookingStatus(current)
    if current not in rule.from_statuses or rule.to_status not in BOOKING_TRANSITIONS[current]:
        raise InvalidStateTransition(
            f"Cannot {operation.value.lower().replace('_', ' ')} a booking in status {current.value}",
            {"status": current.value, "operation": operation.value},
        )
    return rule.to_status


# ── Value Object ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class StopPoint:
    name: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    order: int = 0
    arrival_time: Optional[datetime] = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any], position: int = 0) -> "StopPoint":
        arrival = raw.get("arrival_time")
        if isinstance(arrival, str):
            arrival = datetime.fromisoformat(arrival)
        order = raw.get("order")
        return cls(
            name=raw.get("name") or "",
            lat=_as_float(raw.get("lat")),
            lng=_as_float(raw.get("lng")),
            order=position if order is None else int(order),
            arrival_time=arrival,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "lat": self.lat,
            "lng": self.lng,
            "order": self.order,
            "arrival_time": self.arrival_time.isoformat() if self.arrival_time else None,
        }


def _as_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def normalise_stops(raw_stops: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """Parse, order and serialise a ride's stops for JSON storage."""
    stops = [StopPoint.from_dict(s, i) for i, s in enumerate(raw_stops or [])]
    stops.sort(key=lambda s: s.order)
    return [s.to_dict() for s in stops]


@dataclass(frozen=True)
class SeatAudit:
    ride_id: str
    capacity: int
    available_seats: int
    active_bookings: int

    @property
    def expected_available(self) -> int:
        return self.capacity - self.active_bookings

    @property
    def consistent(self) -> bool:
        return self.available_seats == self.expected_available
