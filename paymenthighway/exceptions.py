"""
Exceptions raised by the Payment Highway API connection.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from paymenthighway.models import Result


class PaymentHighwayError(Exception):
    """Base exception for Payment Highway client errors."""

    pass


class AuthenticationError(PaymentHighwayError):
    """Raised when a message signature from Payment Highway doesn't match."""

    pass


class HttpResponseError(PaymentHighwayError):
    """Raised for non-success HTTP statuses other than 401."""

    def __init__(self, status_code: int, reason: str):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"HTTP {status_code}: {reason}")


class ErrorResponseError(PaymentHighwayError):
    """Raised when the response result indicates an error."""

    def __init__(self, result: Optional["Result"]):
        self.result = result
        if result is None:
            message = "response has no result"
        else:
            message = f"error code {result.code} ({result.message})"
        super().__init__(message)
