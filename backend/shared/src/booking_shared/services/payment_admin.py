"""Operator actions on a single reservation: status override, archive, delete."""

import datetime as dt
from typing import TYPE_CHECKING

from booking_shared.models import (
    AuthRequired,
    ConcurrentUpdate,
    ConflictingActiveCheckout,
    InvalidStatusTransition,
    PaymentStatus,
    Reservation,
    UnknownReservation,
    is_valid_transition,
)
from booking_shared.utils.logging import get_logger, log_payment_operation

if TYPE_CHECKING:
    from .reservation_store import ReservationStore
    from .transaction_log import TransactionLog

logger = get_logger(__name__)


class PaymentAdminService:
    """Manual payment administration.

    Manual overrides never send the customer confirmation.
    """

    def __init__(
        self,
        store: "ReservationStore",
        transactions: "TransactionLog",
    ) -> None:
        self.store = store
        self.transactions = transactions

    def _require(self, reservation_id: str) -> Reservation:
        reservation = self.store.get(reservation_id)
        if reservation is None:
            raise UnknownReservation(details={"reservation_id": reservation_id})
        return reservation

    def override_payment_status(
        self,
        reservation_id: str,
        status: PaymentStatus,
        *,
        operator: str | None,
        gateway_transaction_id: str | None = None,
        notes: str | None = None,
    ) -> Reservation:
        """Set a reservation's payment status by hand.

        Args:
            reservation_id: Reservation to update
            status: Target payment status
            operator: Authenticated operator identity
            gateway_transaction_id: Recorded only if none is stored yet
            notes: Replacement operator notes

        Returns:
            The updated reservation

        Raises:
            AuthRequired: No operator identity
            UnknownReservation: No such reservation
            ConflictingActiveCheckout: PAID requested while a checkout is live
            InvalidStatusTransition: Transition not allowed
            ConcurrentUpdate: The reservation changed since it was read
        """
        if not operator:
            raise AuthRequired()

        reservation = self._require(reservation_id)

        if status == PaymentStatus.PAID:
            active = self.transactions.find_active([reservation_id])
            if active:
                log_payment_operation(
                    logger,
                    "manual_paid_refused",
                    reservation_id=reservation_id,
                    checkout_id=active[0].checkout_id,
                    operator=operator,
                )
                raise ConflictingActiveCheckout(
                    details={
                        "reservation_id": reservation_id,
                        "checkout_id": active[0].checkout_id,
                    }
                )

        current = reservation.payment_status
        if status != current and not is_valid_transition(current, status):
            raise InvalidStatusTransition(
                details={"from": current.value, "to": status.value}
            )

        paid_at = (
            dt.datetime.now(dt.UTC)
            if status == PaymentStatus.PAID and current != PaymentStatus.PAID
            else None
        )
        updated = self.store.update_payment_status(
            reservation,
            status,
            notes=notes,
            gateway_transaction_id=gateway_transaction_id,
            paid_at=paid_at,
        )
        if updated is None:
            raise ConcurrentUpdate(details={"reservation_id": reservation_id})

        log_payment_operation(
            logger,
            "manual_override",
            reservation_id=reservation_id,
            group_id=reservation.group_id,
            status=status.value,
            previous_status=current.value,
            operator=operator,
        )
        return updated

    def set_archived(
        self, reservation_id: str, archived: bool, *, operator: str | None
    ) -> Reservation:
        """Archive or unarchive a reservation."""
        if not operator:
            raise AuthRequired()
        updated = self.store.set_archived(reservation_id, archived, operator)
        if updated is None:
            raise UnknownReservation(details={"reservation_id": reservation_id})
        logger.info(
            "Reservation %s %s by %s",
            reservation_id,
            "archived" if archived else "unarchived",
            operator,
        )
        return updated

    def delete_reservation(self, reservation_id: str, *, operator: str | None) -> int:
        """Delete a reservation together with its transaction rows.

        Returns:
            Number of transaction rows deleted
        """
        if not operator:
            raise AuthRequired()
        self._require(reservation_id)
        deleted_rows = self.transactions.delete_for_reservation(reservation_id)
        self.store.delete(reservation_id)
        logger.info(
            "Reservation %s deleted by %s (%d transaction rows)",
            reservation_id,
            operator,
            deleted_rows,
        )
        return deleted_rows
