"""
Domain exceptions.

Raised at the point a rule is violated and translated to an HTTP envelope
by ``src.api.errors``.  Each class carries the status code it maps to so
the API layer needs no per-exception branching.
"""

from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for all booking / ride errors."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def code(self) -> str:
        return self.__class__.__name__


class NotFoundError(DomainError):
    """A referenced ride, booking or user does not exist."""

    status_code = 404


class InvalidArgumentError(DomainError):
    """Missing search terms, negative amounts, malformed input."""

    status_code = 400


class ForbiddenError(DomainError):
    """Caller is not the ride's driver / not the booking's owner."""

    status_code = 403


class ConflictError(DomainError):
    """Illegal state transition, no seats left, concurrent request."""

    status_code = 409


class NoSeatsAvailableError(ConflictError):
    pass


class InvalidStateTransition(ConflictError):
    """Raised when a booking status change violates the state machine."""


class InternalError(DomainError):
    """Unexpected store failure, wrapped with the originating operation."""

    status_code = 500

    def __init__(self, operation: str, message: str = "Internal error"):
        self.operation = operation
        super().__init__(message, {"operation": operation})
