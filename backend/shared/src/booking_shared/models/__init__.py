"""Pydantic models for event booking payment entities."""

from .checkout import CheckoutSession, CreatedCheckout, GatewayCheckout
from .enums import (
    ACTIVE_TRANSACTION_STATUSES,
    GatewayCheckoutStatus,
    PaymentStatus,
    TransactionStatus,
    is_valid_transition,
)
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    AuthRequired,
    BookingError,
    ConcurrentUpdate,
    ConflictingActiveCheckout,
    ErrorCode,
    GatewayUnavailable,
    InvalidRequest,
    InvalidStatusTransition,
    MalformedPayload,
    ReservationAlreadyPaid,
    ToolError,
    UnknownCheckout,
    UnknownReservation,
)
from .notification import ConfirmationActivity, ConfirmationNotice, NotificationResult
from .reconciliation import PaymentStatusCheck, ReconciliationResult, StatusMapping
from .reservation import BookingGroupCreate, Reservation, ReservationCreate
from .transaction import PaymentTransaction

__all__ = [
    # Enums
    "ACTIVE_TRANSACTION_STATUSES",
    "GatewayCheckoutStatus",
    "PaymentStatus",
    "TransactionStatus",
    "is_valid_transition",
    # Reservation
    "BookingGroupCreate",
    "Reservation",
    "ReservationCreate",
    # Transaction log
    "PaymentTransaction",
    # Gateway
    "CheckoutSession",
    "CreatedCheckout",
    "GatewayCheckout",
    # Reconciliation
    "PaymentStatusCheck",
    "ReconciliationResult",
    "StatusMapping",
    # Notification
    "ConfirmationActivity",
    "ConfirmationNotice",
    "NotificationResult",
    # Errors
    "AuthRequired",
    "BookingError",
    "ConcurrentUpdate",
    "ConflictingActiveCheckout",
    "ErrorCode",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "GatewayUnavailable",
    "InvalidRequest",
    "InvalidStatusTransition",
    "MalformedPayload",
    "ReservationAlreadyPaid",
    "ToolError",
    "UnknownCheckout",
    "UnknownReservation",
]
