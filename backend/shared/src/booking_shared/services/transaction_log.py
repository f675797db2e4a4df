"""Payment transaction log: one row per reservation per checkout attempt."""

import datetime as dt
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from booking_shared.models import (
    CreatedCheckout,
    PaymentTransaction,
    Reservation,
    TransactionStatus,
)
from booking_shared.utils.logging import get_logger

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)


class TransactionLog:
    """Service for the payment-transactions table."""

    TABLE = "payment-transactions"
    CHECKOUT_INDEX = "checkout_id-index"
    RESERVATION_INDEX = "reservation_id-index"

    def __init__(self, db: "DynamoDBService") -> None:
        """Initialize transaction log.

        Args:
            db: DynamoDB service instance
        """
        self.db = db

    def _generate_transaction_id(self) -> str:
        """Generate a unique transaction row ID like PTX-ABC123DEF456."""
        return f"PTX-{uuid.uuid4().hex[:12].upper()}"

    # Reads

    def find_by_checkout(self, checkout_id: str) -> list[PaymentTransaction]:
        """Get every transaction row of a checkout."""
        items = self.db.query_by_gsi(
            self.TABLE, self.CHECKOUT_INDEX, "checkout_id", checkout_id
        )
        return self._reload(items)

    def find_by_reservation(self, reservation_id: str) -> list[PaymentTransaction]:
        """Get a reservation's transaction rows, most recent first."""
        items = self.db.query_by_gsi(
            self.TABLE, self.RESERVATION_INDEX, "reservation_id", reservation_id
        )
        return sorted(self._reload(items), key=lambda t: t.initiated_at, reverse=True)

    def find_by_reservations(
        self, reservation_ids: list[str]
    ) -> list[PaymentTransaction]:
        """Get the transaction rows of several reservations, most recent first."""
        rows: list[PaymentTransaction] = []
        for reservation_id in dict.fromkeys(reservation_ids):
            rows.extend(self.find_by_reservation(reservation_id))
        return sorted(rows, key=lambda t: t.initiated_at, reverse=True)

    def find_active(self, reservation_ids: list[str]) -> list[PaymentTransaction]:
        """Get INITIATED or PENDING rows, most recently initiated first."""
        return [t for t in self.find_by_reservations(reservation_ids) if t.is_active]

    def _reload(self, items: list[dict[str, Any]]) -> list[PaymentTransaction]:
        # Index reads are eventually consistent; reload by key
        keys = [{"transaction_id": item["transaction_id"]} for item in items]
        return [self._item_to_transaction(item) for item in self.db.batch_get(self.TABLE, keys)]

    # Writes

    def record_checkout(
        self,
        reservations: list[Reservation],
        checkout: CreatedCheckout,
        currency: str = "EUR",
    ) -> list[PaymentTransaction]:
        """Insert one INITIATED row per reservation, all sharing the checkout.

        Raises:
            RuntimeError: If the rows could not be written
        """
        transactions = [
            PaymentTransaction(
                transaction_id=self._generate_transaction_id(),
                reservation_id=reservation.reservation_id,
                checkout_id=checkout.checkout_id,
                checkout_url=checkout.checkout_url,
                amount=reservation.amount,
                currency=currency,
                status=TransactionStatus.INITIATED,
                initiated_at=checkout.created_at,
                updated_at=checkout.created_at,
            )
            for reservation in reservations
        ]
        transact_items = [
            self.db.put_transact_item(
                self.TABLE,
                self._transaction_to_item(transaction),
                condition_expression="attribute_not_exists(transaction_id)",
            )
            for transaction in transactions
        ]
        if not self.db.transact_write(transact_items):
            raise RuntimeError(
                f"Failed to record transactions for checkout {checkout.checkout_id}"
            )
        return transactions

    def expire(self, transactions: list[PaymentTransaction]) -> int:
        """Move still-active rows to EXPIRED.

        Rows that left the active states in the meantime are left alone.

        Returns:
            Number of rows expired
        """
        now = dt.datetime.now(dt.UTC).isoformat()
        expired = 0
        for transaction in transactions:
            attrs = self.db.update_item(
                self.TABLE,
                {"transaction_id": transaction.transaction_id},
                "SET #status = :expired, expired_at = :now, updated_at = :now",
                {
                    ":expired": TransactionStatus.EXPIRED.value,
                    ":initiated": TransactionStatus.INITIATED.value,
                    ":pending": TransactionStatus.PENDING.value,
                    ":now": now,
                },
                {"#status": "status"},  # status is a reserved word
                condition_expression="#status IN (:initiated, :pending)",
            )
            if attrs is not None:
                expired += 1
        return expired

    def status_transact_item(
        self,
        transaction_id: str,
        status: TransactionStatus,
        *,
        now: dt.datetime,
        gateway_transaction_id: str | None = None,
    ) -> dict[str, Any]:
        """Build a conditional status update for a transact_write.

        COMPLETED rows are final; the condition rejects any change to them.
        COMPLETED sets completed_at and EXPIRED sets expired_at.
        """
        set_clauses = ["#status = :status", "updated_at = :now"]
        values: dict[str, Any] = {
            ":status": status.value,
            ":completed": TransactionStatus.COMPLETED.value,
            ":now": now.isoformat(),
        }
        if status == TransactionStatus.COMPLETED:
            set_clauses.append("completed_at = :now")
            if gateway_transaction_id:
                set_clauses.append("gateway_transaction_id = :gateway_txn")
                values[":gateway_txn"] = gateway_transaction_id
        elif status == TransactionStatus.EXPIRED:
            set_clauses.append("expired_at = :now")

        return self.db.update_transact_item(
            self.TABLE,
            {"transaction_id": transaction_id},
            "SET " + ", ".join(set_clauses),
            values,
            {"#status": "status"},
            condition_expression="#status <> :completed",
        )

    def delete_for_reservation(self, reservation_id: str) -> int:
        """Delete every transaction row of a reservation.

        Returns:
            Number of rows deleted
        """
        rows = self.find_by_reservation(reservation_id)
        for row in rows:
            self.db.delete_item(self.TABLE, {"transaction_id": row.transaction_id})
        return len(rows)

    # Item conversion

    def _transaction_to_item(self, transaction: PaymentTransaction) -> dict[str, Any]:
        """Convert PaymentTransaction model to DynamoDB item."""
        item: dict[str, Any] = {
            "transaction_id": transaction.transaction_id,
            "reservation_id": transaction.reservation_id,
            "checkout_id": transaction.checkout_id,
            "amount": transaction.amount,
            "currency": transaction.currency,
            "status": transaction.status.value,
            "initiated_at": transaction.initiated_at.isoformat(),
        }
        if transaction.checkout_url:
            item["checkout_url"] = transaction.checkout_url
        if transaction.gateway_transaction_id:
            item["gateway_transaction_id"] = transaction.gateway_transaction_id
        if transaction.completed_at:
            item["completed_at"] = transaction.completed_at.isoformat()
        if transaction.expired_at:
            item["expired_at"] = transaction.expired_at.isoformat()
        if transaction.updated_at:
            item["updated_at"] = transaction.updated_at.isoformat()
        return item

    def _item_to_transaction(self, item: dict[str, Any]) -> PaymentTransaction:
        """Convert DynamoDB item to PaymentTransaction model."""
        return PaymentTransaction(
            transaction_id=item["transaction_id"],
            reservation_id=item["reservation_id"],
            checkout_id=item["checkout_id"],
            checkout_url=item.get("checkout_url"),
            amount=Decimal(str(item["amount"])),
            currency=item.get("currency", "EUR"),
            status=TransactionStatus(item["status"]),
            gateway_transaction_id=item.get("gateway_transaction_id"),
            initiated_at=dt.datetime.fromisoformat(item["initiated_at"]),
            completed_at=(
                dt.datetime.fromisoformat(item["completed_at"])
                if item.get("completed_at")
                else None
            ),
            expired_at=(
                dt.datetime.fromisoformat(item["expired_at"])
                if item.get("expired_at")
                else None
            ),
            updated_at=(
                dt.datetime.fromisoformat(item["updated_at"])
                if item.get("updated_at")
                else None
            ),
        )
