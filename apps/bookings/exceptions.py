"""Errors raised by the booking engine.

Every error carries a stable ``code`` for API clients and a ``retryable``
flag. Only store failures are retryable; everything else is a business
rejection that will not change if the caller simply tries again.
"""

from __future__ import annotations


class BookingError(Exception):
    """Base class for booking engine errors."""

    code = "booking_error"
    retryable = False
    default_detail = "The booking request could not be processed."

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class BookingValidationError(BookingError):
    """Malformed request: bad interval, unknown court, outside opening hours."""

    code = "validation_error"
    default_detail = "The booking request is invalid."


class ReservationNotFound(BookingValidationError):
    code = "reservation_not_found"
    default_detail = "Reservation not found."


class LimitReachedError(BookingError):
    """The player already has a reservation at this venue on this date."""

    code = "limit_reached"
    default_detail = "You already have a reservation at this venue on this date."


class PendingCapReached(LimitReachedError):
    code = "pending_cap_reached"
    default_detail = "You have too many pending reservations."


class BookingConflictError(BookingError):
    """The requested interval is not free on the court."""

    code = "conflict"
    default_detail = "The court is not available for the requested time."


class TimeOverlapConflict(BookingConflictError):
    code = "time_overlap"
    default_detail = "The court is already reserved for an overlapping time."


class BlockingEventConflict(BookingConflictError):
    code = "blocking_event"
    default_detail = "The court is closed for an event during the requested time."


class TransientStoreError(BookingError):
    """The reservation store could not answer; nothing was written."""

    code = "store_unavailable"
    retryable = True
    default_detail = "The booking service is temporarily unavailable. Please retry."


class InvalidTransitionError(BookingError):
    code = "invalid_transition"
    default_detail = "This reservation cannot change to the requested status."


class CancellationWindowClosed(InvalidTransitionError):
    code = "cancellation_window_closed"
    default_detail = "It is too late to cancel this reservation."
