"""Payment reconciliation engine.

Webhook deliveries, client status polls and any other caller that needs a
checkout's authoritative state funnel into ReconciliationEngine.reconcile.
The PAID transition of a group is one conditional DynamoDB transaction:
whichever invocation commits it first sends the single confirmation,
every other one observes the already-PAID rows and does nothing.
"""

import datetime as dt
import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from booking_shared.models import (
    ConfirmationActivity,
    ConfirmationNotice,
    ConcurrentUpdate,
    GatewayCheckout,
    GatewayCheckoutStatus,
    GatewayUnavailable,
    InvalidRequest,
    PaymentStatus,
    PaymentStatusCheck,
    PaymentTransaction,
    ReconciliationResult,
    Reservation,
    StatusMapping,
    TransactionStatus,
    UnknownCheckout,
    UnknownReservation,
)
from booking_shared.utils.logging import get_logger, log_payment_operation

from .sumup_service import SumUpServiceError

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService
    from .notification_service import NotificationService
    from .reservation_store import ReservationStore
    from .sumup_service import PaymentGateway
    from .transaction_log import TransactionLog

logger = get_logger(__name__)

MAX_WRITE_ATTEMPTS = 3

_TERMINAL_MAPPINGS: dict[GatewayCheckoutStatus, StatusMapping] = {
    GatewayCheckoutStatus.PAID: StatusMapping(
        kind="completed",
        gateway_status=GatewayCheckoutStatus.PAID,
        transaction_status=TransactionStatus.COMPLETED,
    ),
    GatewayCheckoutStatus.FAILED: StatusMapping(
        kind="failed",
        gateway_status=GatewayCheckoutStatus.FAILED,
        transaction_status=TransactionStatus.FAILED,
    ),
    GatewayCheckoutStatus.CANCELLED: StatusMapping(
        kind="cancelled",
        gateway_status=GatewayCheckoutStatus.CANCELLED,
        transaction_status=TransactionStatus.CANCELLED,
    ),
    GatewayCheckoutStatus.EXPIRED: StatusMapping(
        kind="expired",
        gateway_status=GatewayCheckoutStatus.EXPIRED,
        transaction_status=TransactionStatus.EXPIRED,
    ),
}

# Webhook payload keys that may carry the checkout id, in lookup order
_TOP_LEVEL_ID_KEYS = ("checkout_id", "checkoutId", "id")
_NESTED_ID_KEYS = ("data", "event_data")


def map_gateway_status(status: GatewayCheckoutStatus) -> StatusMapping:
    """Map a gateway checkout status to its transaction-log effect.

    PAID completes the checkout's rows, FAILED/CANCELLED/EXPIRED move them
    to the same-named status, anything else leaves them unchanged.
    """
    mapping = _TERMINAL_MAPPINGS.get(status)
    if mapping is None:
        return StatusMapping(kind="unchanged", gateway_status=status)
    return mapping


def extract_checkout_id(payload: Any) -> str | None:
    """Find the checkout id in a webhook payload.

    Looks at checkout_id, checkoutId, id, data.id and event_data.id in that
    order. Values of the wrong shape are skipped.
    """
    if not isinstance(payload, Mapping):
        return None

    for key in _TOP_LEVEL_ID_KEYS:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()

    for key in _NESTED_ID_KEYS:
        nested = payload.get(key)
        if isinstance(nested, Mapping):
            value = nested.get("id")
            if isinstance(value, str) and value.strip():
                return value.strip()

    return None


def aggregate_payment_status(reservations: list[Reservation]) -> PaymentStatus:
    """Collapse a group's payment statuses into one.

    PAID when every row is PAID, PENDING while any row is PENDING,
    otherwise the status of the first reservation.
    """
    statuses = [r.payment_status for r in reservations]
    if all(s == PaymentStatus.PAID for s in statuses):
        return PaymentStatus.PAID
    if PaymentStatus.PENDING in statuses:
        return PaymentStatus.PENDING
    return statuses[0]


def build_confirmation(
    reservations: list[Reservation], checkout_id: str
) -> ConfirmationNotice:
    """Aggregate a paid group into one confirmation message.

    The first reservation provides the contact and event details.
    """
    contact = reservations[0]
    return ConfirmationNotice(
        to=contact.email,
        first_name=contact.first_name,
        last_name=contact.last_name,
        event_name=contact.event_name,
        event_date=contact.event_date,
        checkout_id=checkout_id,
        activities=[
            ConfirmationActivity(
                reservation_id=r.reservation_id,
                activity_name=r.activity_name,
                participants=dict(r.participants),
                amount=r.amount,
            )
            for r in reservations
        ],
        total_amount=sum((r.amount for r in reservations), Decimal("0")),
    )


class ReconciliationEngine:
    """Brings a checkout's reservations in line with the gateway's status."""

    def __init__(
        self,
        db: "DynamoDBService",
        store: "ReservationStore",
        transactions: "TransactionLog",
        gateway: "PaymentGateway",
        notifier: "NotificationService",
    ) -> None:
        """Initialize the engine.

        Args:
            db: DynamoDB service used for the transactional write
            store: Reservation group store
            transactions: Payment transaction log
            gateway: Payment provider client
            notifier: Confirmation sender
        """
        self.db = db
        self.store = store
        self.transactions = transactions
        self.gateway = gateway
        self.notifier = notifier

    def reconcile(self, checkout_id: str) -> ReconciliationResult:
        """Reconcile one checkout against the payment provider.

        Safe to call any number of times, concurrently, from any entry point.

        Args:
            checkout_id: SumUp checkout ID

        Returns:
            ReconciliationResult; updated is True only for the call that
            moved the group to PAID

        Raises:
            UnknownCheckout: No transaction row references the checkout
            GatewayUnavailable: SumUp could not be queried; nothing was written
            ConcurrentUpdate: The rows kept changing under every write attempt
        """
        log_payment_operation(logger, "reconcile_started", checkout_id=checkout_id)

        rows = self.transactions.find_by_checkout(checkout_id)
        if not rows:
            log_payment_operation(
                logger, "unknown_checkout", checkout_id=checkout_id, level=logging.WARNING
            )
            raise UnknownCheckout(details={"checkout_id": checkout_id})

        reservations = self.store.get_many([row.reservation_id for row in rows])
        if not reservations:
            raise UnknownCheckout(
                details={"checkout_id": checkout_id, "reason": "reservations_missing"}
            )

        if all(r.payment_status == PaymentStatus.PAID for r in reservations):
            log_payment_operation(
                logger,
                "already_processed",
                checkout_id=checkout_id,
                status=PaymentStatus.PAID.value,
            )
            return ReconciliationResult(
                checkout_id=checkout_id,
                status=GatewayCheckoutStatus.PAID,
                already_processed=True,
                reservations_count=len(reservations),
            )

        checkout = self._fetch_checkout(checkout_id)
        mapping = map_gateway_status(checkout.status)
        log_payment_operation(
            logger,
            "gateway_status",
            checkout_id=checkout_id,
            status=checkout.status.value,
            mapping=mapping.kind,
        )

        updated_count, reservations = self._apply(checkout, mapping, rows, reservations)

        if updated_count > 0:
            log_payment_operation(
                logger,
                "transition_won",
                checkout_id=checkout_id,
                status=PaymentStatus.PAID.value,
                updated_count=updated_count,
            )
            self._notify(reservations, checkout_id)

        return ReconciliationResult(
            checkout_id=checkout_id,
            status=checkout.status,
            updated=updated_count > 0,
            reservations_count=len(reservations),
        )

    def _fetch_checkout(self, checkout_id: str) -> GatewayCheckout:
        try:
            return self.gateway.get_checkout(checkout_id)
        except SumUpServiceError as e:
            log_payment_operation(
                logger, "gateway_unavailable", checkout_id=checkout_id, error=str(e)
            )
            raise GatewayUnavailable(
                details={"checkout_id": checkout_id, "reason": str(e)}
            ) from e

    def _apply(
        self,
        checkout: GatewayCheckout,
        mapping: StatusMapping,
        rows: list[PaymentTransaction],
        reservations: list[Reservation],
    ) -> tuple[int, list[Reservation]]:
        """Write the mapped state in one conditional transaction.

        Returns:
            Number of reservations this call moved to PAID, and the
            reservations as last read
        """
        checkout_id = checkout.checkout_id
        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            now = dt.datetime.now(dt.UTC)
            items: list[dict[str, Any]] = []

            if mapping.transaction_status is not None:
                items.extend(
                    self.transactions.status_transact_item(
                        row.transaction_id,
                        mapping.transaction_status,
                        now=now,
                        gateway_transaction_id=checkout.transaction_id,
                    )
                    for row in rows
                    if row.status not in (TransactionStatus.COMPLETED, mapping.transaction_status)
                )

            pending: list[Reservation] = []
            if mapping.is_paid:
                pending = [r for r in reservations if r.payment_status == PaymentStatus.PENDING]
                items.extend(
                    self.store.mark_paid_transact_item(
                        r.reservation_id,
                        checkout_id=checkout_id,
                        gateway_transaction_id=checkout.transaction_id,
                        paid_at=now,
                    )
                    for r in pending
                )

            if not items:
                return 0, reservations

            if self.db.transact_write(items):
                if pending:
                    reservations = self.store.get_many([r.reservation_id for r in reservations])
                return len(pending), reservations

            # Another invocation changed the rows first; look again
            rows = self.transactions.find_by_checkout(checkout_id)
            reservations = self.store.get_many([r.reservation_id for r in reservations])
            if mapping.is_paid and not any(
                r.payment_status == PaymentStatus.PENDING for r in reservations
            ):
                log_payment_operation(
                    logger,
                    "transition_lost",
                    checkout_id=checkout_id,
                    status=PaymentStatus.PAID.value,
                    attempt=attempt,
                )
                return 0, reservations

            log_payment_operation(
                logger,
                "write_conflict",
                checkout_id=checkout_id,
                attempt=attempt,
                level=logging.WARNING,
            )

        raise ConcurrentUpdate(
            details={"checkout_id": checkout_id, "attempts": MAX_WRITE_ATTEMPTS}
        )

    def _notify(self, reservations: list[Reservation], checkout_id: str) -> None:
        """Send the group confirmation; failures are logged, never raised."""
        try:
            result = self.notifier.send_payment_confirmation(
                build_confirmation(reservations, checkout_id)
            )
        except Exception as e:
            logger.exception("Confirmation for checkout %s raised", checkout_id)
            log_payment_operation(
                logger, "notification_failed", checkout_id=checkout_id, error=str(e)
            )
            return

        if result.outcome == "failed":
            log_payment_operation(
                logger,
                "notification_failed",
                checkout_id=checkout_id,
                error=result.error or "unknown",
            )
        else:
            log_payment_operation(
                logger,
                "notification_" + result.outcome,
                checkout_id=checkout_id,
                message_id=result.message_id,
            )

    # Status poll

    def check_status(
        self,
        *,
        group_id: str | None = None,
        reservation_id: str | None = None,
    ) -> PaymentStatusCheck:
        """Answer a client status poll for a group or a single reservation.

        Only calls the gateway when an active checkout exists.

        Raises:
            InvalidRequest: Neither or both identifiers were given
            UnknownReservation: Nothing matches the identifier
        """
        if (group_id is None) == (reservation_id is None):
            raise InvalidRequest(
                details={"reason": "exactly one of groupId or reservationId is required"}
            )

        if group_id is not None:
            reservations = self.store.get_group(group_id)
        else:
            reservations = self.store.get_group_for(reservation_id)
        if not reservations:
            raise UnknownReservation(
                details={"group_id": group_id}
                if group_id is not None
                else {"reservation_id": reservation_id}
            )

        stored_status = aggregate_payment_status(reservations)
        if stored_status == PaymentStatus.PAID:
            return PaymentStatusCheck(
                status=PaymentStatus.PAID,
                message="Payment confirmed",
                reservations_count=len(reservations),
            )

        active = self.transactions.find_active([r.reservation_id for r in reservations])
        if not active:
            return PaymentStatusCheck(
                status=stored_status,
                message="No payment in progress",
                reservations_count=len(reservations),
            )

        result = self.reconcile(active[0].checkout_id)

        # The checkout may cover only part of the group
        reservations = self.store.get_many([r.reservation_id for r in reservations])
        group_status = aggregate_payment_status(reservations)
        if group_status == PaymentStatus.PAID:
            return PaymentStatusCheck(
                status=PaymentStatus.PAID,
                message="Payment confirmed",
                updated=result.updated,
                reservations_count=len(reservations),
                checkout_id=result.checkout_id,
            )
        if result.already_processed or result.status == GatewayCheckoutStatus.PAID:
            return PaymentStatusCheck(
                status=group_status,
                message="Other reservations of the group are awaiting payment",
                reservations_count=len(reservations),
                checkout_id=result.checkout_id,
            )
        return PaymentStatusCheck(
            status=result.status,
            message=f"Status: {result.status.value}",
            updated=result.updated,
            reservations_count=len(reservations),
            checkout_id=result.checkout_id,
        )
