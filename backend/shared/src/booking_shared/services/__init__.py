"""Business logic services for booking payments."""

from .checkout_service import CHECKOUT_REUSE_WINDOW, CheckoutService
from .dynamodb import DynamoDBService, get_dynamodb_service, reset_dynamodb_service
from .notification_service import NotificationService, get_notification_service
from .payment_admin import PaymentAdminService
from .reconciliation import (
    MAX_WRITE_ATTEMPTS,
    ReconciliationEngine,
    extract_checkout_id,
    map_gateway_status,
)
from .reservation_store import ReservationStore
from .ssm_service import SSMService, SSMServiceError, get_ssm_service
from .sumup_service import (
    MockSumUpService,
    PaymentGateway,
    SumUpService,
    SumUpServiceError,
    get_gateway_client,
)
from .transaction_log import TransactionLog

__all__ = [
    "CHECKOUT_REUSE_WINDOW",
    "CheckoutService",
    "DynamoDBService",
    "get_dynamodb_service",
    "reset_dynamodb_service",
    "NotificationService",
    "get_notification_service",
    "PaymentAdminService",
    "MAX_WRITE_ATTEMPTS",
    "ReconciliationEngine",
    "extract_checkout_id",
    "map_gateway_status",
    "ReservationStore",
    "SSMService",
    "SSMServiceError",
    "get_ssm_service",
    "MockSumUpService",
    "PaymentGateway",
    "SumUpService",
    "SumUpServiceError",
    "get_gateway_client",
    "TransactionLog",
]
