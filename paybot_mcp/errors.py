"""PayBot adapter errors.

Every failure the adapter can surface is tagged with an ErrorKind so
callers can branch on the tag rather than on the exception class.
Business failures (a declined payment) are not exceptions: they come
back as a normal PaymentResult with success=False.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Tag identifying the family of a failure."""

    CONFIGURATION = "configuration"
    HTTP = "http"
    PROTOCOL = "protocol"
    BUSINESS = "business"


class FacilitatorError(Exception):
    """Base class for all adapter errors.

    Subclasses set ``kind`` so that handlers can match on it.
    """

    kind: ErrorKind

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize facilitator error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(FacilitatorError):
    """Raised when the process configuration cannot produce an identity."""

    kind = ErrorKind.CONFIGURATION


class FacilitatorHttpError(FacilitatorError):
    """Raised when the facilitator answers with a non-success status.

    Timeouts and connection failures are reported through this error
    too, with a synthetic 504 or 502 status.
    """

    kind = ErrorKind.HTTP

    def __init__(
        self,
        status_code: int,
        body: str,
        message: str | None = None,
    ) -> None:
        """Initialize HTTP error.

        Args:
            status_code: HTTP status returned by the facilitator.
            body: Response body text, or a placeholder if unreadable.
            message: Facilitator-provided error message, if one was found.
        """
        super().__init__(
            message or f"PayBot API error ({status_code}): {body}",
            details={
                "status_code": status_code,
                "body": body,
                "api_message": message,
            },
        )
        self.status_code = status_code
        self.body = body


class FacilitatorProtocolError(FacilitatorError):
    """Raised when a success response cannot be understood."""

    kind = ErrorKind.PROTOCOL
