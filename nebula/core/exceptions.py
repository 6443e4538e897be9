"""
Custom Exceptions

This module defines the error taxonomy of the visitor tracking core.

Propagation policy:
- EnrichmentFailure and LogWriteFailure are absorbed and logged below the
  counted-visit boundary; the visitor never sees them
- CounterWriteFailure is the only failure that changes session behaviour:
  the session is not marked as counted and may retry on its next load
- SubscriptionFailure is surfaced to the live counter consumer, which hides
  itself instead of showing an error
- Missing fields in logged visits are never an error; aggregation substitutes
  defaults
"""


class NebulaException(Exception):
    """Base exception for the visitor analytics service."""
    pass


class EnrichmentFailure(NebulaException):
    """Raised when a geolocation lookup fails or times out."""

    def __init__(self, reason: str, original_error: Exception = None):
        self.reason = reason
        self.original_error = original_error
        super().__init__(f"Geolocation lookup failed: {reason}")


class CounterWriteFailure(NebulaException):
    """Raised when the shared visitor counter could not be incremented."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Counter write failed: {message}")


class LogWriteFailure(NebulaException):
    """Raised when a visit record could not be appended to the event log."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Visit log write failed: {message}")


class SubscriptionFailure(NebulaException):
    """Raised when a live counter subscriber can no longer be served."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Subscription failed: {message}")


class InvalidWindowError(NebulaException):
    """Raised when an analytics window size is not one of the allowed values."""

    def __init__(self, days, allowed):
        self.days = days
        self.allowed = list(allowed)
        super().__init__(
            f"Invalid analytics window: {days!r} (allowed: {', '.join(map(str, self.allowed))})"
        )
