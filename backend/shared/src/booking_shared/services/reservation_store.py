"""Reservation group store backed by the reservations table.

A group is every reservation sharing a group_id. A reservation without
group_id forms a group of one keyed by its own reservation_id.
"""

import datetime as dt
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from booking_shared.models import (
    BookingGroupCreate,
    PaymentStatus,
    Reservation,
)
from booking_shared.utils.logging import get_logger

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)


class ReservationStore:
    """Reads and conditional writes on reservation groups."""

    TABLE = "reservations"
    GROUP_INDEX = "group_id-index"

    def __init__(self, db: "DynamoDBService") -> None:
        """Initialize reservation store.

        Args:
            db: DynamoDB service instance
        """
        self.db = db

    # Reads

    def get(self, reservation_id: str) -> Reservation | None:
        item = self.db.get_item(self.TABLE, {"reservation_id": reservation_id})
        return self._item_to_reservation(item) if item else None

    def get_many(self, reservation_ids: list[str]) -> list[Reservation]:
        """Load reservations by id with a strongly consistent read.

        Missing ids are skipped. Result order follows reservation_ids.
        """
        unique_ids = list(dict.fromkeys(reservation_ids))
        items = self.db.batch_get(
            self.TABLE, [{"reservation_id": rid} for rid in unique_ids]
        )
        by_id = {item["reservation_id"]: self._item_to_reservation(item) for item in items}
        return [by_id[rid] for rid in unique_ids if rid in by_id]

    def get_group(self, group_key: str) -> list[Reservation]:
        """Load every reservation of a group, oldest first.

        Args:
            group_key: A group_id, or the id of a reservation without group

        Returns:
            The group's reservations; empty if nothing matches
        """
        items = self.db.query_by_gsi(
            self.TABLE, self.GROUP_INDEX, "group_id", group_key
        )
        if items:
            # Index reads are eventually consistent; reload by key
            group = self.get_many([item["reservation_id"] for item in items])
            return sorted(group, key=lambda r: (r.created_at, r.reservation_id))

        lone = self.get(group_key)
        if lone is not None and lone.group_id is None:
            return [lone]
        return []

    def get_group_for(self, reservation_id: str) -> list[Reservation]:
        """Load the whole group a reservation belongs to."""
        reservation = self.get(reservation_id)
        if reservation is None:
            return []
        if reservation.group_id is None:
            return [reservation]
        return self.get_group(reservation.group_id)

    # Writes

    def create_group(self, data: BookingGroupCreate) -> list[Reservation]:
        """Atomically create all reservations of a booking.

        Every row gets the same new group_id and PENDING status.

        Raises:
            RuntimeError: If the transaction is cancelled (id collision)
        """
        group_id = str(uuid.uuid4())
        now = dt.datetime.now(dt.UTC)

        reservations = [
            Reservation(
                reservation_id=str(uuid.uuid4()),
                group_id=group_id,
                event_id=data.event_id,
                event_name=data.event_name,
                event_date=data.event_date,
                activity_id=line.activity_id,
                activity_name=line.activity_name,
                first_name=data.first_name,
                last_name=data.last_name,
                email=data.email,
                phone=data.phone,
                participants=dict(line.participants),
                amount=line.amount,
                payment_status=PaymentStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            for line in data.reservations
        ]

        transact_items = [
            self.db.put_transact_item(
                self.TABLE,
                self._reservation_to_item(reservation),
                condition_expression="attribute_not_exists(reservation_id)",
            )
            for reservation in reservations
        ]
        if not self.db.transact_write(transact_items):
            raise RuntimeError(f"Failed to create reservation group {group_id}")

        logger.info(
            "Created reservation group %s with %d reservation(s)",
            group_id,
            len(reservations),
        )
        return reservations

    def mark_paid_transact_item(
        self,
        reservation_id: str,
        *,
        checkout_id: str,
        gateway_transaction_id: str | None,
        paid_at: dt.datetime,
    ) -> dict[str, Any]:
        """Build the conditional PENDING -> PAID update for a transact_write.

        The condition fails for any row no longer awaiting payment.
        """
        set_clauses = [
            "payment_status = :paid",
            "paid_at = :paid_at",
            "gateway_checkout_id = :checkout_id",
            "updated_at = :now",
        ]
        values: dict[str, Any] = {
            ":paid": PaymentStatus.PAID.value,
            ":pending": PaymentStatus.PENDING.value,
            ":paid_at": paid_at.isoformat(),
            ":checkout_id": checkout_id,
            ":now": paid_at.isoformat(),
        }
        if gateway_transaction_id:
            set_clauses.append("gateway_transaction_id = :gateway_txn")
            values[":gateway_txn"] = gateway_transaction_id

        return self.db.update_transact_item(
            self.TABLE,
            {"reservation_id": reservation_id},
            "SET " + ", ".join(set_clauses),
            values,
            condition_expression="payment_status = :pending",
        )

    def update_payment_status(
        self,
        reservation: Reservation,
        status: PaymentStatus,
        *,
        notes: str | None = None,
        gateway_transaction_id: str | None = None,
        paid_at: dt.datetime | None = None,
    ) -> Reservation | None:
        """Write a payment status change conditioned on the observed status.

        Args:
            reservation: Reservation as read by the caller
            status: New payment status
            notes: Replacement operator notes, if given
            gateway_transaction_id: Set only when the row has none yet
            paid_at: Set only when given

        Returns:
            Updated reservation, or None if the row changed since it was read
        """
        now = dt.datetime.now(dt.UTC)
        set_clauses = ["payment_status = :status", "updated_at = :now"]
        values: dict[str, Any] = {
            ":status": status.value,
            ":expected": reservation.payment_status.value,
            ":now": now.isoformat(),
        }
        if notes is not None:
            set_clauses.append("notes = :notes")
            values[":notes"] = notes
        if paid_at is not None:
            set_clauses.append("paid_at = :paid_at")
            values[":paid_at"] = paid_at.isoformat()
        if gateway_transaction_id and not reservation.gateway_transaction_id:
            set_clauses.append(
                "gateway_transaction_id = if_not_exists(gateway_transaction_id, :gateway_txn)"
            )
            values[":gateway_txn"] = gateway_transaction_id

        attrs = self.db.update_item(
            self.TABLE,
            {"reservation_id": reservation.reservation_id},
            "SET " + ", ".join(set_clauses),
            values,
            condition_expression="attribute_exists(reservation_id) AND payment_status = :expected",
        )
        return self._item_to_reservation(attrs) if attrs else None

    def set_archived(
        self, reservation_id: str, archived: bool, operator: str
    ) -> Reservation | None:
        """Set or clear the archive flag. Payment fields are untouched.

        Returns:
            Updated reservation, or None if it does not exist
        """
        now = dt.datetime.now(dt.UTC).isoformat()
        if archived:
            update_expression = (
                "SET archived = :archived, archived_at = :now, "
                "archived_by = :operator, updated_at = :now"
            )
            values: dict[str, Any] = {
                ":archived": True,
                ":now": now,
                ":operator": operator,
            }
        else:
            update_expression = (
                "SET archived = :archived, updated_at = :now "
                "REMOVE archived_at, archived_by"
            )
            values = {":archived": False, ":now": now}

        attrs = self.db.update_item(
            self.TABLE,
            {"reservation_id": reservation_id},
            update_expression,
            values,
            condition_expression="attribute_exists(reservation_id)",
        )
        return self._item_to_reservation(attrs) if attrs else None

    def delete(self, reservation_id: str) -> bool:
        return self.db.delete_item(self.TABLE, {"reservation_id": reservation_id})

    # Item conversion

    def _reservation_to_item(self, reservation: Reservation) -> dict[str, Any]:
        """Convert Reservation model to DynamoDB item."""
        item: dict[str, Any] = {
            "reservation_id": reservation.reservation_id,
            "event_id": reservation.event_id,
            "event_name": reservation.event_name,
            "activity_name": reservation.activity_name,
            "first_name": reservation.first_name,
            "last_name": reservation.last_name,
            "email": reservation.email,
            "participants": dict(reservation.participants),
            "amount": reservation.amount,
            "payment_status": reservation.payment_status.value,
            "archived": reservation.archived,
            "created_at": reservation.created_at.isoformat(),
            "updated_at": reservation.updated_at.isoformat(),
        }
        # GSI key attributes must be omitted rather than null
        if reservation.group_id:
            item["group_id"] = reservation.group_id
        if reservation.event_date:
            item["event_date"] = reservation.event_date.isoformat()
        if reservation.activity_id:
            item["activity_id"] = reservation.activity_id
        if reservation.phone:
            item["phone"] = reservation.phone
        if reservation.paid_at:
            item["paid_at"] = reservation.paid_at.isoformat()
        if reservation.gateway_checkout_id:
            item["gateway_checkout_id"] = reservation.gateway_checkout_id
        if reservation.gateway_transaction_id:
            item["gateway_transaction_id"] = reservation.gateway_transaction_id
        if reservation.archived_at:
            item["archived_at"] = reservation.archived_at.isoformat()
        if reservation.archived_by:
            item["archived_by"] = reservation.archived_by
        if reservation.notes is not None:
            item["notes"] = reservation.notes
        return item

    def _item_to_reservation(self, item: dict[str, Any]) -> Reservation:
        """Convert DynamoDB item to Reservation model."""
        return Reservation(
            reservation_id=item["reservation_id"],
            group_id=item.get("group_id"),
            event_id=item["event_id"],
            event_name=item["event_name"],
            event_date=(
                dt.date.fromisoformat(item["event_date"])
                if item.get("event_date")
                else None
            ),
            activity_id=item.get("activity_id"),
            activity_name=item["activity_name"],
            first_name=item["first_name"],
            last_name=item["last_name"],
            email=item["email"],
            phone=item.get("phone"),
            participants={
                str(label): int(count)
                for label, count in (item.get("participants") or {}).items()
            },
            amount=Decimal(str(item["amount"])),
            payment_status=PaymentStatus(item["payment_status"]),
            paid_at=_parse_datetime(item.get("paid_at")),
            gateway_checkout_id=item.get("gateway_checkout_id"),
            gateway_transaction_id=item.get("gateway_transaction_id"),
            archived=bool(item.get("archived", False)),
            archived_at=_parse_datetime(item.get("archived_at")),
            archived_by=item.get("archived_by"),
            notes=item.get("notes"),
            created_at=dt.datetime.fromisoformat(item["created_at"]),
            updated_at=dt.datetime.fromisoformat(item["updated_at"]),
        )


def _parse_datetime(value: str | None) -> dt.datetime | None:
    return dt.datetime.fromisoformat(value) if value else None
