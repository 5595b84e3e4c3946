"""Unit tests for the booking state machine and role-based capability checks."""

import pytest

from src.domain.entities import next_status
from src.domain.enums import TERMINAL_STATUSES, BookingOperation, BookingStatus, UserRole
from src.domain.exceptions import ConflictError, InvalidStateTransition
from src.domain.permissions import BOOKING_RULES, can_perform, cancel_operation_for

ALLOWED = {
    (BookingStatus.PENDING, BookingOperation.VALIDATE): BookingStatus.CONFIRMED,
    (BookingStatus.CONFIRMED, BookingOperation.START): BookingStatus.STARTED,
    (BookingStatus.STARTED, BookingOperation.COMPLETE): BookingStatus.COMPLETED,
    (BookingStatus.PENDING, BookingOperation.CANCEL_BY_RIDER): BookingStatus.CANCELLED,
    (BookingStatus.CONFIRMED, BookingOperation.CANCEL_BY_RIDER): BookingStatus.CANCELLED,
    (BookingStatus.CONFIRMED, BookingOperation.CANCEL_BY_DRIVER): BookingStatus.CANCELLED,
}

TRANSITION_OPERATIONS = [op for op in BookingOperation if op != BookingOperation.CREATE]


class TestBookingStateMachine:
    def test_full_lifecycle(self):
        status = BookingStatus.PENDING
        for operation in (
            BookingOperation.VALIDATE,
            BookingOperation.START,
            BookingOperation.COMPLETE,
        ):
            status = next_status(operation, status)
        assert status == BookingStatus.COMPLETED
        assert status in TERMINAL_STATUSES

    @pytest.mark.parametrize(
        "status,operation",
        [(s, op) for s in BookingStatus for op in TRANSITION_OPERATIONS],
    )
    def test_every_state_operation_pair(self, status, operation):
        expected = ALLOWED.get((status, operation))
        if expected is None:
            with pytest.raises(InvalidStateTransition):
                next_status(operation, status)
        else:
            assert next_status(operation, status) == expected

    def test_illegal_transition_is_a_conflict(self):
        with pytest.raises(ConflictError) as exc:
            next_status(BookingOperation.START, BookingStatus.PENDING)
        assert exc.value.status_code == 409
        assert exc.value.details == {"status": "PENDING", "operation": "START"}

    def test_driver_cannot_cancel_pending(self):
        with pytest.raises(InvalidStateTransition):
            next_status(BookingOperation.CANCEL_BY_DRIVER, BookingStatus.PENDING)

    def test_started_cannot_be_cancelled(self):
        """Once started, a booking can only complete."""
        for operation in (BookingOperation.CANCEL_BY_RIDER, BookingOperation.CANCEL_BY_DRIVER):
            with pytest.raises(InvalidStateTransition):
                next_status(operation, BookingStatus.STARTED)

    @pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES))
    def test_terminal_statuses_are_final(self, status):
        for operation in TRANSITION_OPERATIONS:
            with pytest.raises(InvalidStateTransition):
                next_status(operation, status)


class TestCapabilities:
    def test_rules_cover_every_operation(self):
        assert set(BOOKING_RULES) == set(BookingOperation)

    def test_only_riders_create(self):
        assert can_perform(BookingOperation.CREATE, UserRole.USER, "u1")
        assert not can_perform(BookingOperation.CREATE, UserRole.DRIVER, "d1")

    @pytest.mark.parametrize(
        "operation",
        [BookingOperation.VALIDATE, BookingOperation.START, BookingOperation.COMPLETE],
    )
    def test_driver_operations_require_ride_driver(self, operation):
        assert can_perform(operation, UserRole.DRIVER, "d1", rider_id="u1", driver_id="d1")
        assert not can_perform(operation, UserRole.DRIVER, "d2", rider_id="u1", driver_id="d1")

    @pytest.mark.parametrize(
        "operation",
        [BookingOperation.VALIDATE, BookingOperation.START, BookingOperation.COMPLETE],
    )
    def test_rider_never_runs_driver_operations(self, operation):
        # Even when the ids happen to match
        assert not can_perform(operation, UserRole.USER, "d1", rider_id="u1", driver_id="d1")

    def test_rider_cancel_requires_ownership(self):
        op = BookingOperation.CANCEL_BY_RIDER
        assert can_perform(op, UserRole.USER, "u1", rider_id="u1", driver_id="d1")
        assert not can_perform(op, UserRole.USER, "u2", rider_id="u1", driver_id="d1")

    def test_missing_owner_is_refused(self):
        assert not can_perform(BookingOperation.VALIDATE, UserRole.DRIVER, "d1")

    def test_roles_as_strings(self):
        assert can_perform(BookingOperation.CREATE, "USER", "u1")

    def test_cancel_operation_for(self):
        assert cancel_operation_for(UserRole.USER) == BookingOperation.CANCEL_BY_RIDER
        assert cancel_operation_for(UserRole.DRIVER) == BookingOperation.CANCEL_BY_DRIVER
