"""Checkout initiation for reservation groups."""

import datetime as dt
import os
from decimal import Decimal
from typing import TYPE_CHECKING

from booking_shared.models import (
    CheckoutSession,
    GatewayUnavailable,
    InvalidRequest,
    PaymentStatus,
    Reservation,
    ReservationAlreadyPaid,
    UnknownReservation,
)
from booking_shared.utils.logging import get_logger, log_payment_operation

from .sumup_service import SumUpServiceError

if TYPE_CHECKING:
    from .reservation_store import ReservationStore
    from .sumup_service import PaymentGateway
    from .transaction_log import TransactionLog

logger = get_logger(__name__)

CHECKOUT_REUSE_WINDOW = dt.timedelta(hours=1)
CURRENCY = "EUR"


class CheckoutService:
    """Creates or reuses a hosted checkout covering a whole group."""

    def __init__(
        self,
        store: "ReservationStore",
        transactions: "TransactionLog",
        gateway: "PaymentGateway",
        app_url: str | None = None,
    ) -> None:
        self.store = store
        self.transactions = transactions
        self.gateway = gateway
        self.app_url = (app_url or os.getenv("APP_URL", "http://localhost:4321")).rstrip("/")

    def initiate_checkout(
        self,
        *,
        group_id: str | None = None,
        reservation_id: str | None = None,
    ) -> CheckoutSession:
        """Start payment for a group, or for a single reservation.

        A recent active checkout covering exactly the same reservations is
        returned as is; otherwise active rows are expired and a new checkout
        is created for the summed amount.

        Raises:
            InvalidRequest: Neither or both identifiers were given
            UnknownReservation: Nothing matches the identifier
            ReservationAlreadyPaid: A reservation of the group is already PAID
            GatewayUnavailable: SumUp refused or could not be reached
        """
        if (group_id is None) == (reservation_id is None):
            raise InvalidRequest(
                details={"reason": "exactly one of groupId or reservationId is required"}
            )

        if group_id is not None:
            reservations = self.store.get_group(group_id)
            reference = group_id
        else:
            reservation = self.store.get(reservation_id)
            reservations = [reservation] if reservation else []
            reference = reservation_id

        if not reservations:
            raise UnknownReservation(
                details={"group_id": group_id}
                if group_id is not None
                else {"reservation_id": reservation_id}
            )

        paid = [r.reservation_id for r in reservations if r.payment_status == PaymentStatus.PAID]
        if paid:
            raise ReservationAlreadyPaid(details={"reservation_ids": ",".join(paid)})

        reservation_ids = [r.reservation_id for r in reservations]
        active = self.transactions.find_active(reservation_ids)

        now = dt.datetime.now(dt.UTC)
        latest = active[0] if active else None
        if (
            latest is not None
            and latest.checkout_url
            and now - latest.initiated_at < CHECKOUT_REUSE_WINDOW
            and self._covers_exactly(latest.checkout_id, reservation_ids)
        ):
            log_payment_operation(
                logger,
                "checkout_reused",
                checkout_id=latest.checkout_id,
                group_id=group_id,
                reservation_id=reservation_id,
            )
            return CheckoutSession(
                checkout_id=latest.checkout_id,
                checkout_url=latest.checkout_url,
                existing=True,
                reservations_count=len(reservations),
            )

        if active:
            expired = self.transactions.expire(active)
            log_payment_operation(
                logger,
                "checkout_expired",
                group_id=group_id,
                reservation_id=reservation_id,
                expired_count=expired,
            )

        total = sum((r.amount for r in reservations), Decimal("0"))
        query = f"groupId={group_id}" if group_id is not None else f"reservationId={reservation_id}"
        try:
            checkout = self.gateway.create_checkout(
                amount=total,
                currency=CURRENCY,
                checkout_reference=reference,
                description=checkout_description(reservations),
                redirect_url=f"{self.app_url}/payment/return?{query}",
                return_url=f"{self.app_url}/api/webhooks/sumup",
            )
        except SumUpServiceError as e:
            log_payment_operation(
                logger,
                "checkout_failed",
                group_id=group_id,
                reservation_id=reservation_id,
                error=str(e),
            )
            raise GatewayUnavailable(details={"reason": str(e)}) from e

        self.transactions.record_checkout(reservations, checkout, currency=CURRENCY)
        log_payment_operation(
            logger,
            "checkout_created",
            checkout_id=checkout.checkout_id,
            group_id=group_id,
            reservation_id=reservation_id,
            amount=str(total),
        )
        return CheckoutSession(
            checkout_id=checkout.checkout_id,
            checkout_url=checkout.checkout_url,
            existing=False,
            reservations_count=len(reservations),
        )

    def _covers_exactly(self, checkout_id: str, reservation_ids: list[str]) -> bool:
        """Whether the checkout's active rows are exactly these reservations."""
        rows = self.transactions.find_by_checkout(checkout_id)
        return all(row.is_active for row in rows) and {
            row.reservation_id for row in rows
        } == set(reservation_ids)


def checkout_description(reservations: list[Reservation]) -> str:
    """Text shown on the hosted checkout: event, activities, customer."""
    first = reservations[0]
    activities = ", ".join(dict.fromkeys(r.activity_name for r in reservations))
    return f"{first.event_name} - {activities} - {first.first_name} {first.last_name}"
