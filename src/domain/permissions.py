"""
Role-based capability checks for booking operations.

``BOOKING_RULES`` is the single transition table: which role may run an
operation, whose identity it must match, which statuses it accepts and
the status it produces.  Both the entity and the service read it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .enums import BookingOperation, BookingStatus, UserRole


@dataclass(frozen=True)
class OperationRule:
    role: UserRole
    # "rider" -> caller must own the booking, "driver" -> caller must drive
    # the ride, None -> any caller with the role
    owner: Optional[str]
    from_statuses: frozenset[BookingStatus]
    to_status: BookingStatus


BOOKING_RULES: dict[BookingOperation, OperationRule] = {
    BookingOperation.CREATE: OperationRule(
        role=UserRole.USER,
        owner=None,
        from_statuses=frozenset(),
        to_status=BookingStatus.PENDING,
    ),
    BookingOperation.VALIDATE: OperationRule(
        role=UserRole.DRIVER,
        owner="driver",
        from_statuses=frozenset({BookingStatus.PENDING}),
        to_status=BookingStatus.CONFIRMED,
    ),
    BookingOperation.START: OperationRule(
        role=UserRole.DRIVER,
        owner="driver",
        from_statuses=frozenset({BookingStatus.CONFIRMED}),
        to_status=BookingStatus.STARTED,
    ),
    BookingOperation.COMPLETE: OperationRule(
        role=UserRole.DRIVER,
        owner="driver",
        from_statuses=frozenset({BookingStatus.STARTED}),
        to_status=BookingStatus.COMPLETED,
    ),
    BookingOperation.CANCEL_BY_RIDER: OperationRule(
        role=UserRole.USER,
        owner="rider",
        from_statuses=frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED}),
        to_status=BookingStatus.CANCELLED,
    ),
    BookingOperation.CANCEL_BY_DRIVER: OperationRule(
        role=UserRole.DRIVER,
        owner="driver",
        from_statuses=frozenset({BookingStatus.CONFIRMED}),
        to_status=BookingStatus.CANCELLED,
    ),
}


def can_perform(
    operation: BookingOperation,
    caller_role: UserRole,
    caller_id: str,
    *,
    rider_id: Optional[str] = None,
    driver_id: Optional[str] = None,
) -> bool:
    """Return True if *caller* may run *operation* on the given resource."""
    rule = BOOKING_RULES[operation]
    if UserRole(caller_role) != rule.role:
        return False
    if rule.owner == "rider":
        return rider_id is not None and caller_id == rider_id
    if rule.owner == "driver":
        return driver_id is not None and caller_id == driver_id
    return True


def cancel_operation_for(role: UserRole) -> BookingOperation:
    """Map the caller's role to the cancel variant it is allowed to run."""
    if UserRole(role) == UserRole.DRIVER:
        return BookingOperation.CANCEL_BY_DRIVER
    return BookingOperation.CANCEL_BY_RIDER
