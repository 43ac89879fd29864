"""
Domain-specific exception hierarchy for the scheduling engine.
"""


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class InvalidInputError(SchedulingError, ValueError):
    """Raised when a request or snapshot violates a model invariant."""


class UnknownEntityError(SchedulingError, LookupError):
    """Raised when a service or employee id is not part of the snapshot."""


class SearchBudgetExceeded(SchedulingError):
    """
    Raised when a search runs out of its candidate or time budget.

    This is not the same as "no availability": a retry with a larger budget
    might still find slots. ``partial`` holds whatever was found before the
    budget ran out.
    """

    def __init__(self, message: str, partial=None):
        super().__init__(message)
        self.partial = list(partial or [])


class BookingStoreError(SchedulingError):
    """Raised when booking data cannot be fetched or parsed."""
