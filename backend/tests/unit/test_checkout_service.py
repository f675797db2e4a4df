"""Unit tests for CheckoutService."""

import datetime as dt
from decimal import Decimal

import pytest

from booking_shared.models import (
    CreatedCheckout,
    GatewayUnavailable,
    InvalidRequest,
    PaymentStatus,
    ReservationAlreadyPaid,
    TransactionStatus,
    UnknownReservation,
)
from booking_shared.services.checkout_service import CheckoutService, checkout_description
from booking_shared.services.sumup_service import SumUpServiceError
from conftest import TEST_CHECKOUT_ID, TEST_CHECKOUT_URL

APP_URL = "https://booking.example.org"


def _created(checkout_id: str) -> CreatedCheckout:
    return CreatedCheckout(
        checkout_id=checkout_id,
        checkout_url=f"https://checkout.sumup.com/pay/{checkout_id}",
        created_at=dt.datetime.now(dt.UTC),
    )


@pytest.fixture
def checkout_service(store, transaction_log, mock_gateway) -> CheckoutService:
    return CheckoutService(store, transaction_log, mock_gateway, app_url=APP_URL)


class TestInitiateCheckout:
    def test_creates_checkout_for_group_total(
        self, checkout_service, transaction_log, mock_gateway, booking_group
    ) -> None:
        group_id = booking_group[0].group_id

        session = checkout_service.initiate_checkout(group_id=group_id)

        assert session.checkout_id == TEST_CHECKOUT_ID
        assert session.checkout_url == TEST_CHECKOUT_URL
        assert session.existing is False
        assert session.reservations_count == 2

        kwargs = mock_gateway.create_checkout.call_args.kwargs
        assert kwargs["amount"] == Decimal("45.00")
        assert kwargs["currency"] == "EUR"
        assert kwargs["checkout_reference"] == group_id
        assert kwargs["redirect_url"] == f"{APP_URL}/payment/return?groupId={group_id}"
        assert kwargs["return_url"] == f"{APP_URL}/api/webhooks/sumup"

        rows = transaction_log.find_by_checkout(TEST_CHECKOUT_ID)
        assert len(rows) == 2
        assert {row.status for row in rows} == {TransactionStatus.INITIATED}

    def test_single_reservation_checkout(
        self, checkout_service, transaction_log, mock_gateway, booking_group
    ) -> None:
        target = booking_group[1]

        session = checkout_service.initiate_checkout(reservation_id=target.reservation_id)

        assert session.reservations_count == 1
        kwargs = mock_gateway.create_checkout.call_args.kwargs
        assert kwargs["amount"] == Decimal("15.00")
        assert kwargs["redirect_url"].endswith(f"?reservationId={target.reservation_id}")
        assert [row.reservation_id for row in transaction_log.find_by_checkout(TEST_CHECKOUT_ID)] == [
            target.reservation_id
        ]

    def test_reuses_recent_active_checkout(
        self, checkout_service, mock_gateway, booking_group, checkout_rows
    ) -> None:
        session = checkout_service.initiate_checkout(group_id=booking_group[0].group_id)

        assert session.existing is True
        assert session.checkout_id == TEST_CHECKOUT_ID
        assert session.checkout_url == TEST_CHECKOUT_URL
        mock_gateway.create_checkout.assert_not_called()

    def test_group_checkout_does_not_reuse_single_reservation_checkout(
        self, checkout_service, transaction_log, mock_gateway, booking_group
    ) -> None:
        first, second = booking_group
        mock_gateway.create_checkout.side_effect = [
            _created("chk_single"),
            _created("chk_group"),
        ]
        checkout_service.initiate_checkout(reservation_id=first.reservation_id)

        session = checkout_service.initiate_checkout(group_id=first.group_id)

        assert session.existing is False
        assert session.checkout_id == "chk_group"
        assert session.reservations_count == 2
        assert {row.reservation_id for row in transaction_log.find_by_checkout("chk_group")} == {
            first.reservation_id,
            second.reservation_id,
        }
        single = transaction_log.find_by_checkout("chk_single")
        assert {row.status for row in single} == {TransactionStatus.EXPIRED}

    def test_single_reservation_does_not_reuse_group_checkout(
        self, checkout_service, mock_gateway, booking_group, checkout_rows
    ) -> None:
        mock_gateway.create_checkout.return_value = _created("chk_single")

        session = checkout_service.initiate_checkout(
            reservation_id=booking_group[1].reservation_id
        )

        assert session.existing is False
        assert session.checkout_id == "chk_single"
        assert session.reservations_count == 1

    def test_expires_stale_checkout_before_creating(
        self, checkout_service, transaction_log, mock_gateway, booking_group
    ) -> None:
        transaction_log.record_checkout(
            booking_group,
            CreatedCheckout(
                checkout_id="chk_stale",
                checkout_url="https://checkout.sumup.com/pay/chk_stale",
                created_at=dt.datetime.now(dt.UTC) - dt.timedelta(hours=2),
            ),
        )

        session = checkout_service.initiate_checkout(group_id=booking_group[0].group_id)

        assert session.existing is False
        mock_gateway.create_checkout.assert_called_once()
        stale = transaction_log.find_by_checkout("chk_stale")
        assert {row.status for row in stale} == {TransactionStatus.EXPIRED}
        active = transaction_log.find_active([r.reservation_id for r in booking_group])
        assert {row.checkout_id for row in active} == {TEST_CHECKOUT_ID}

    def test_refuses_group_with_paid_reservation(
        self, checkout_service, store, mock_gateway, booking_group
    ) -> None:
        store.update_payment_status(booking_group[0], PaymentStatus.PAID)

        with pytest.raises(ReservationAlreadyPaid):
            checkout_service.initiate_checkout(group_id=booking_group[0].group_id)

        mock_gateway.create_checkout.assert_not_called()

    def test_gateway_failure_records_nothing(
        self, checkout_service, transaction_log, mock_gateway, booking_group
    ) -> None:
        mock_gateway.create_checkout.side_effect = SumUpServiceError("SumUp returned 500", 500)

        with pytest.raises(GatewayUnavailable):
            checkout_service.initiate_checkout(group_id=booking_group[0].group_id)

        assert transaction_log.find_active([r.reservation_id for r in booking_group]) == []

    def test_unknown_group(self, checkout_service, create_tables) -> None:
        with pytest.raises(UnknownReservation):
            checkout_service.initiate_checkout(group_id="missing")

    def test_requires_exactly_one_identifier(self, checkout_service) -> None:
        with pytest.raises(InvalidRequest):
            checkout_service.initiate_checkout()
        with pytest.raises(InvalidRequest):
            checkout_service.initiate_checkout(group_id="g", reservation_id="r")


def test_checkout_description(booking_group) -> None:
    assert checkout_description(booking_group) == (
        "Fête des Vendanges - Randonnée des coteaux, Dégustation - Camille Martin"
    )


def test_app_url_from_environment(store, transaction_log, mock_gateway, monkeypatch) -> None:
    monkeypatch.setenv("APP_URL", "https://fete.example.org/")

    service = CheckoutService(store, transaction_log, mock_gateway)

    assert service.app_url == "https://fete.example.org"
