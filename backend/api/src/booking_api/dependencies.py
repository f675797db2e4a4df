"""FastAPI dependency injection providers for shared services.

Service instances are lazily created and cached with @lru_cache, so every
request shares one DynamoDB connection, one SumUp HTTP client and one SES
client per process.

Usage in routes:
    from booking_api.dependencies import get_reconciliation_engine

    @router.get("/payments/check-status")
    def check_status(
        engine: ReconciliationEngine = Depends(get_reconciliation_engine),
    ):
        ...

Service Dependency Graph:
    DynamoDBService (singleton via get_dynamodb_service)
        ├── ReservationStore
        └── TransactionLog
    ReconciliationEngine <- store, log, gateway client, notifier
    CheckoutService      <- store, log, gateway client
    PaymentAdminService  <- store, log

Testing:
    Use reset_services() to clear cached instances between tests.
"""

from functools import lru_cache

from fastapi import Request

from booking_shared.services.checkout_service import CheckoutService
from booking_shared.services.dynamodb import get_dynamodb_service
from booking_shared.services.notification_service import get_notification_service
from booking_shared.services.payment_admin import PaymentAdminService
from booking_shared.services.reconciliation import ReconciliationEngine
from booking_shared.services.reservation_store import ReservationStore
from booking_shared.services.sumup_service import get_gateway_client
from booking_shared.services.transaction_log import TransactionLog
from booking_shared.utils.logging import get_logger

logger = get_logger(__name__)


@lru_cache
def get_reservation_store() -> ReservationStore:
    """Get cached ReservationStore instance."""
    return ReservationStore(db=get_dynamodb_service())


@lru_cache
def get_transaction_log() -> TransactionLog:
    """Get cached TransactionLog instance."""
    return TransactionLog(db=get_dynamodb_service())


@lru_cache
def get_reconciliation_engine() -> ReconciliationEngine:
    """Get cached ReconciliationEngine instance.

    Returns:
        ReconciliationEngine wired to the store, the transaction log,
        the payment gateway client and the notifier.
    """
    return ReconciliationEngine(
        db=get_dynamodb_service(),
        store=get_reservation_store(),
        transactions=get_transaction_log(),
        gateway=get_gateway_client(),
        notifier=get_notification_service(),
    )


@lru_cache
def get_checkout_service() -> CheckoutService:
    """Get cached CheckoutService instance."""
    return CheckoutService(
        store=get_reservation_store(),
        transactions=get_transaction_log(),
        gateway=get_gateway_client(),
    )


@lru_cache
def get_payment_admin_service() -> PaymentAdminService:
    """Get cached PaymentAdminService instance."""
    return PaymentAdminService(
        store=get_reservation_store(),
        transactions=get_transaction_log(),
    )


def _get_header_case_insensitive(request: Request, name: str) -> str | None:
    value = request.headers.get(name)
    if value:
        return value
    # Mangum keeps the raw API Gateway headers on the scope
    event_headers = request.scope.get("aws.event", {}).get("headers") or {}
    for key, header_value in event_headers.items():
        if key.lower() == name.lower():
            return header_value
    return None


def get_operator(request: Request) -> str | None:
    """Operator identity injected by the API gateway authorizer.

    Reads x-user-name, falling back to x-user-sub, then to the Cognito
    claims of a REST API authorizer. Returns None when unauthenticated;
    the admin service turns that into AuthRequired.
    """
    operator = _get_header_case_insensitive(
        request, "x-user-name"
    ) or _get_header_case_insensitive(request, "x-user-sub")

    if not operator:
        event = request.scope.get("aws.event", {})
        claims = event.get("requestContext", {}).get("authorizer", {}).get("claims", {})
        operator = claims.get("cognito:username") or claims.get("sub")

    if not operator:
        logger.warning("auth_operator_missing", extra={"path": request.url.path})
    return operator


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.
    Also closes the gateway HTTP client and resets the DynamoDB singleton.
    """
    from booking_shared.services.dynamodb import reset_dynamodb_service

    if get_gateway_client.cache_info().currsize:
        get_gateway_client().close()

    get_reservation_store.cache_clear()
    get_transaction_log.cache_clear()
    get_reconciliation_engine.cache_clear()
    get_checkout_service.cache_clear()
    get_payment_admin_service.cache_clear()
    get_gateway_client.cache_clear()
    get_notification_service.cache_clear()

    reset_dynamodb_service()
