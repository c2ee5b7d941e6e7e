"""
Error taxonomy shared by the booking, availability and contact flows.

Each exception carries the HTTP status it maps to; main.py registers a
single handler that renders them as {"message": ..., "errors": {...}}.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code = 500

    def __init__(self, message: str, errors: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}


class InvalidInput(BookingError):
    """Missing or malformed request fields. Never retried."""

    status_code = 400


class SlotConflict(BookingError):
    """The requested slot overlaps an existing booking."""

    status_code = 409


class RateLimitExceeded(BookingError):
    status_code = 429

    def __init__(self, message: str, retry_after: int):
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamUnavailable(BookingError):
    """Record store or mail transport unreachable, failed or timed out."""

    status_code = 503

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        upstream_status: Optional[int] = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.upstream_status = upstream_status


class AmbiguousWrite(BookingError):
    """
    A write timed out after the request was sent.

    The record may or may not exist; callers retry with the same
    idempotency key instead of the server retrying blindly.
    """

    status_code = 504


class ConfigurationError(RuntimeError):
    """Fatal startup configuration problem"""


class NotificationFailed(UpstreamUnavailable):
    """Every configured mail transport failed for a message the caller waits on."""

    status_code = 502
