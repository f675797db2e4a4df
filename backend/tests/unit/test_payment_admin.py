"""Unit tests for PaymentAdminService."""

from unittest.mock import patch

import pytest

from booking_shared.models import (
    AuthRequired,
    ConcurrentUpdate,
    ConflictingActiveCheckout,
    InvalidStatusTransition,
    PaymentStatus,
    UnknownReservation,
)
from booking_shared.services.payment_admin import PaymentAdminService

OPERATOR = "admin@example.com"


@pytest.fixture
def admin(store, transaction_log) -> PaymentAdminService:
    return PaymentAdminService(store, transaction_log)


class TestOverridePaymentStatus:
    def test_requires_operator(self, admin, booking_group) -> None:
        with pytest.raises(AuthRequired):
            admin.override_payment_status(
                booking_group[0].reservation_id, PaymentStatus.PAID, operator=None
            )

    def test_unknown_reservation(self, admin, create_tables) -> None:
        with pytest.raises(UnknownReservation):
            admin.override_payment_status("missing", PaymentStatus.PAID, operator=OPERATOR)

    def test_manual_paid_sets_paid_at(self, admin, booking_group) -> None:
        updated = admin.override_payment_status(
            booking_group[0].reservation_id,
            PaymentStatus.PAID,
            operator=OPERATOR,
            gateway_transaction_id="TX-CASH-1",
            notes="Paid in cash at the desk",
        )

        assert updated.payment_status == PaymentStatus.PAID
        assert updated.paid_at is not None
        assert updated.gateway_transaction_id == "TX-CASH-1"
        assert updated.notes == "Paid in cash at the desk"

    def test_refused_while_checkout_active(self, admin, store, booking_group, checkout_rows) -> None:
        rid = booking_group[0].reservation_id

        with pytest.raises(ConflictingActiveCheckout):
            admin.override_payment_status(rid, PaymentStatus.PAID, operator=OPERATOR)

        assert store.get(rid).payment_status == PaymentStatus.PENDING

    def test_other_statuses_allowed_while_checkout_active(
        self, admin, booking_group, checkout_rows
    ) -> None:
        updated = admin.override_payment_status(
            booking_group[0].reservation_id, PaymentStatus.CANCELLED, operator=OPERATOR
        )

        assert updated.payment_status == PaymentStatus.CANCELLED

    def test_paid_allowed_after_checkout_expired(
        self, admin, transaction_log, booking_group, checkout_rows
    ) -> None:
        transaction_log.expire(checkout_rows)

        updated = admin.override_payment_status(
            booking_group[0].reservation_id, PaymentStatus.PAID, operator=OPERATOR
        )

        assert updated.payment_status == PaymentStatus.PAID

    def test_invalid_transition(self, admin, booking_group) -> None:
        rid = booking_group[0].reservation_id
        admin.override_payment_status(rid, PaymentStatus.PAID, operator=OPERATOR)

        with pytest.raises(InvalidStatusTransition) as exc_info:
            admin.override_payment_status(rid, PaymentStatus.PENDING, operator=OPERATOR)

        assert exc_info.value.details == {"from": "PAID", "to": "PENDING"}

    def test_refund_after_paid(self, admin, booking_group) -> None:
        rid = booking_group[0].reservation_id
        paid = admin.override_payment_status(rid, PaymentStatus.PAID, operator=OPERATOR)

        refunded = admin.override_payment_status(rid, PaymentStatus.REFUNDED, operator=OPERATOR)

        assert refunded.payment_status == PaymentStatus.REFUNDED
        assert refunded.paid_at == paid.paid_at

    def test_same_status_updates_notes_only(self, admin, booking_group) -> None:
        rid = booking_group[0].reservation_id
        paid = admin.override_payment_status(
            rid, PaymentStatus.PAID, operator=OPERATOR, gateway_transaction_id="TX-1"
        )

        again = admin.override_payment_status(
            rid,
            PaymentStatus.PAID,
            operator=OPERATOR,
            gateway_transaction_id="TX-2",
            notes="Receipt checked",
        )

        assert again.notes == "Receipt checked"
        assert again.paid_at == paid.paid_at
        assert again.gateway_transaction_id == "TX-1"

    def test_concurrent_change_is_reported(self, admin, store, booking_group) -> None:
        with patch.object(store, "update_payment_status", return_value=None):
            with pytest.raises(ConcurrentUpdate):
                admin.override_payment_status(
                    booking_group[0].reservation_id, PaymentStatus.CANCELLED, operator=OPERATOR
                )

    def test_override_does_not_touch_group_members(self, admin, store, booking_group) -> None:
        admin.override_payment_status(
            booking_group[0].reservation_id, PaymentStatus.PAID, operator=OPERATOR
        )

        assert store.get(booking_group[1].reservation_id).payment_status == PaymentStatus.PENDING


class TestArchiveAndDelete:
    def test_archive(self, admin, booking_group) -> None:
        archived = admin.set_archived(booking_group[0].reservation_id, True, operator=OPERATOR)

        assert archived.archived is True
        assert archived.archived_by == OPERATOR

    def test_archive_requires_operator(self, admin, booking_group) -> None:
        with pytest.raises(AuthRequired):
            admin.set_archived(booking_group[0].reservation_id, True, operator="")

    def test_archive_unknown(self, admin, create_tables) -> None:
        with pytest.raises(UnknownReservation):
            admin.set_archived("missing", True, operator=OPERATOR)

    def test_delete_cascades_to_transactions(
        self, admin, store, transaction_log, booking_group, checkout_rows
    ) -> None:
        rid = booking_group[0].reservation_id

        assert admin.delete_reservation(rid, operator=OPERATOR) == 1

        assert store.get(rid) is None
        assert transaction_log.find_by_reservation(rid) == []
        assert store.get(booking_group[1].reservation_id) is not None

    def test_delete_unknown(self, admin, create_tables) -> None:
        with pytest.raises(UnknownReservation):
            admin.delete_reservation("missing", operator=OPERATOR)
