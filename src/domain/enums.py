"""Domain enumerations and state-transition rules."""

import enum


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.CANCELLED}
)

# Bookings in these states hold a seat on their ride
ACTIVE_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.STARTED}
)


# State machine: maps current status -> set of valid next statuses
BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.STARTED, BookingStatus.CANCELLED},
    BookingStatus.STARTED: {BookingStatus.COMPLETED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}


class UserRole(str, enum.Enum):
    USER = "USER"
    DRIVER = "DRIVER"


class BookingOperation(str, enum.Enum):
    CREATE = "CREATE"
    VALIDATE = "VALIDATE"
    START = "START"
    COMPLETE = "COMPLETE"
    CANCEL_BY_RIDER = "CANCEL_BY_RIDER"
    CANCEL_BY_DRIVER = "CANCEL_BY_DRIVER"
