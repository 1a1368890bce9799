"""Errors raised by the booking engine and the booking service.

Every failure is reported to the caller; routes translate these into HTTP
responses with the message as the detail.
"""


class BookingError(Exception):
    """Base class for booking failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(BookingError, ValueError):
    """Malformed or out-of-range input, rejected before any state is read."""


class SlotConflict(BookingError):
    """The requested slot is no longer available."""


class InvalidTransition(BookingError):
    """The appointment cannot move to the requested status."""


class NotFound(BookingError):
    """A referenced appointment, block, service or user does not exist."""


class FolioExhausted(BookingError):
    """No unused folio could be generated."""
