"""Booking rejections and the other errors raised by the booking core."""

from __future__ import annotations

import enum


class RejectionReason(str, enum.Enum):
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    NO_CAPACITY = "NO_CAPACITY"
    PERSISTENCE = "PERSISTENCE"


class BookingRejection(Exception):
    """A booking request that did not produce a booking."""

    reason: RejectionReason = RejectionReason.VALIDATION

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidBookingRequest(BookingRejection):
    """Missing or invalid request fields, or an unknown payment method."""

    reason = RejectionReason.VALIDATION


class RiderNotFound(BookingRejection):
    reason = RejectionReason.NOT_FOUND


class BookingNotFound(BookingRejection):
    reason = RejectionReason.NOT_FOUND


class NoVehicleAvailable(BookingRejection):
    """No vehicle matched the request.  Expected under load, not a fault."""

    reason = RejectionReason.NO_CAPACITY


class BookingPersistenceError(BookingRejection):
    """The store failed mid-flow; any vehicle reservation was released."""

    reason = RejectionReason.PERSISTENCE


class AllocationUnavailable(BookingPersistenceError):
    """The cross-process allocation lock could not be taken; nothing was reserved."""


class UnsupportedPaymentMethod(ValueError):
    """Raised for a payment-method tag outside the closed set."""


class InvalidStateTransition(Exception):
    """Raised when a booking status change violates the state machine."""
