"""
Domain-specific exception hierarchy for the barbershop scheduling core.
"""


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class InvalidInputError(SchedulingError, ValueError):
    """Raised for malformed input that indicates a caller bug."""


class ConfigError(SchedulingError):
    """Raised when the configuration file cannot be read or validated."""


class BookingStoreError(SchedulingError):
    """Raised when bookings cannot be fetched from or written to the store."""


class BookingConflictError(BookingStoreError):
    """Raised by a store when its atomic no-overlap constraint rejects a write."""

    def __init__(self, message: str, conflicting_booking_id: str | None = None):
        super().__init__(message)
        self.conflicting_booking_id = conflicting_booking_id
