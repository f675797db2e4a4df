"""API request/response models."""

from booking_api.models.admin import (
    AdminReservation,
    AdminReservationResponse,
    ArchiveRequest,
    PaymentStatusUpdateRequest,
)
from booking_api.models.common import (
    CamelModel,
    SuccessMessage,
    ValidationErrorDetail,
    ValidationErrorResponse,
    format_validation_errors,
)
from booking_api.models.payments import (
    CheckoutRequest,
    CheckoutResponse,
    CheckStatusResponse,
    WebhookResponse,
)

__all__ = [
    "AdminReservation",
    "AdminReservationResponse",
    "ArchiveRequest",
    "PaymentStatusUpdateRequest",
    "CamelModel",
    "SuccessMessage",
    "ValidationErrorDetail",
    "ValidationErrorResponse",
    "format_validation_errors",
    "CheckoutRequest",
    "CheckoutResponse",
    "CheckStatusResponse",
    "WebhookResponse",
]
