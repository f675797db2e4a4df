"""Standard error codes for payment reconciliation.

Every domain failure raised by the services is a BookingError subclass
bound to one ErrorCode, so all entry points report the same failure the
same way regardless of which trigger hit it.
"""

from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Standard error codes for payment operations."""

    # Reconciliation and checkout error codes (ERR_PAY_001-ERR_PAY_009)
    UNKNOWN_CHECKOUT = "ERR_PAY_001"
    UNKNOWN_RESERVATION = "ERR_PAY_002"
    GATEWAY_UNAVAILABLE = "ERR_PAY_003"
    CONFLICTING_ACTIVE_CHECKOUT = "ERR_PAY_004"
    MALFORMED_PAYLOAD = "ERR_PAY_005"
    INVALID_STATUS_TRANSITION = "ERR_PAY_006"
    RESERVATION_ALREADY_PAID = "ERR_PAY_007"
    INVALID_REQUEST = "ERR_PAY_008"
    CONCURRENT_UPDATE = "ERR_PAY_009"

    # Authentication error codes
    AUTH_REQUIRED = "ERR_AUTH_001"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.UNKNOWN_CHECKOUT: "No payment transaction found for this checkout",
    ErrorCode.UNKNOWN_RESERVATION: "Reservation not found",
    ErrorCode.GATEWAY_UNAVAILABLE: "Payment provider is unavailable",
    ErrorCode.CONFLICTING_ACTIVE_CHECKOUT: (
        "Cannot mark as paid manually: a payment checkout is still in progress"
    ),
    ErrorCode.MALFORMED_PAYLOAD: "Webhook payload does not contain a checkout id",
    ErrorCode.INVALID_STATUS_TRANSITION: "Payment status change is not allowed",
    ErrorCode.RESERVATION_ALREADY_PAID: "One or more reservations are already paid",
    ErrorCode.INVALID_REQUEST: "Invalid request",
    ErrorCode.CONCURRENT_UPDATE: "Reservation was modified by another request",
    ErrorCode.AUTH_REQUIRED: "Authentication required to perform this action",
}

# Recovery suggestions for callers
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.UNKNOWN_CHECKOUT: "Verify the checkout id belongs to this platform",
    ErrorCode.UNKNOWN_RESERVATION: "Verify the reservation or group id",
    ErrorCode.GATEWAY_UNAVAILABLE: "Retry the request later",
    ErrorCode.CONFLICTING_ACTIVE_CHECKOUT: (
        "Wait for the SumUp checkout to finish or expire, then retry"
    ),
    ErrorCode.MALFORMED_PAYLOAD: "Check the payment provider webhook format",
    ErrorCode.INVALID_STATUS_TRANSITION: (
        "Allowed: PENDING to PAID/FAILED/CANCELLED, PAID to REFUNDED"
    ),
    ErrorCode.RESERVATION_ALREADY_PAID: "No new payment is needed",
    ErrorCode.INVALID_REQUEST: "Check the request parameters and try again",
    ErrorCode.CONCURRENT_UPDATE: "Reload the reservation and retry",
    ErrorCode.AUTH_REQUIRED: "Sign in to the admin dashboard",
}


class ToolError(BaseModel):
    """Standard error response format for failed operations."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ) -> "ToolError":
        """Create a ToolError from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error

        Returns:
            A ToolError with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class BookingError(Exception):
    """Exception raised by booking and payment operations.

    Subclasses pin the error code; the base class may also be raised
    directly with an explicit code.
    """

    default_code: ClassVar[ErrorCode | None] = None

    def __init__(
        self,
        code: ErrorCode | None = None,
        details: Optional[dict[str, Any]] = None,
    ):
        resolved = code or self.default_code
        if resolved is None:
            raise TypeError(f"{type(self).__name__} requires an error code")
        self.code = resolved
        self.message = ERROR_MESSAGES[resolved]
        self.recovery = ERROR_RECOVERY[resolved]
        self.details = (
            {key: str(value) for key, value in details.items()} if details else None
        )
        super().__init__(self.message)

    def to_tool_error(self) -> ToolError:
        """Convert this exception to a ToolError for API responses."""
        return ToolError.from_code(self.code, self.details)


class UnknownCheckout(BookingError):
    default_code = ErrorCode.UNKNOWN_CHECKOUT


class UnknownReservation(BookingError):
    default_code = ErrorCode.UNKNOWN_RESERVATION


class GatewayUnavailable(BookingError):
    """The payment provider could not be reached; nothing was written."""

    default_code = ErrorCode.GATEWAY_UNAVAILABLE


class ConflictingActiveCheckout(BookingError):
    default_code = ErrorCode.CONFLICTING_ACTIVE_CHECKOUT


class MalformedPayload(BookingError):
    default_code = ErrorCode.MALFORMED_PAYLOAD


class InvalidStatusTransition(BookingError):
    default_code = ErrorCode.INVALID_STATUS_TRANSITION


class ReservationAlreadyPaid(BookingError):
    default_code = ErrorCode.RESERVATION_ALREADY_PAID


class InvalidRequest(BookingError):
    default_code = ErrorCode.INVALID_REQUEST


class ConcurrentUpdate(BookingError):
    default_code = ErrorCode.CONCURRENT_UPDATE


class AuthRequired(BookingError):
    default_code = ErrorCode.AUTH_REQUIRED
