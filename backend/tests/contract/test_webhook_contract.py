"""Contract tests for POST /api/webhooks/sumup.

The endpoint answers:
- 200 with {success, checkoutId, status} once the checkout is reconciled
- 400 ERR_PAY_005 when the payload carries no checkout id
- 404 ERR_PAY_001 for a checkout unknown to the platform
- 503 ERR_PAY_003 when SumUp cannot be queried (SumUp retries)
"""

from starlette.status import (
    HTTP_200_OK,
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from booking_shared.models import GatewayCheckoutStatus, PaymentStatus
from booking_shared.services.sumup_service import SumUpServiceError
from conftest import TEST_CHECKOUT_ID, make_gateway_checkout

WEBHOOK_URL = "/api/webhooks/sumup"


def _sumup_event(checkout_id: str = TEST_CHECKOUT_ID) -> dict:
    return {
        "event_type": "CHECKOUT_STATUS_CHANGED",
        "id": checkout_id,
        "status": "PAID",
    }


class TestWebhookSuccess:
    def test_paid_checkout_marks_group_paid(
        self, api_client, store, mock_notifier, booking_group, checkout_rows
    ) -> None:
        response = api_client.post(WEBHOOK_URL, json=_sumup_event())

        assert response.status_code == HTTP_200_OK
        assert response.json() == {
            "success": True,
            "checkoutId": TEST_CHECKOUT_ID,
            "status": "PAID",
        }
        for reservation in store.get_many([r.reservation_id for r in booking_group]):
            assert reservation.payment_status == PaymentStatus.PAID
        mock_notifier.send_payment_confirmation.assert_called_once()

    def test_duplicate_delivery_is_acknowledged_without_side_effects(
        self, api_client, mock_gateway, mock_notifier, booking_group, checkout_rows
    ) -> None:
        first = api_client.post(WEBHOOK_URL, json=_sumup_event())
        second = api_client.post(WEBHOOK_URL, json=_sumup_event())

        assert first.status_code == HTTP_200_OK
        assert second.status_code == HTTP_200_OK
        assert second.json()["status"] == "PAID"
        assert mock_gateway.get_checkout.call_count == 1
        assert mock_notifier.send_payment_confirmation.call_count == 1

    def test_nested_checkout_id(
        self, api_client, mock_gateway, booking_group, checkout_rows
    ) -> None:
        response = api_client.post(
            WEBHOOK_URL,
            json={"event_type": "CHECKOUT_STATUS_CHANGED", "data": {"id": TEST_CHECKOUT_ID}},
        )

        assert response.status_code == HTTP_200_OK
        mock_gateway.get_checkout.assert_called_once_with(TEST_CHECKOUT_ID)

    def test_payload_status_is_not_trusted(
        self, api_client, store, mock_gateway, mock_notifier, booking_group, checkout_rows
    ) -> None:
        mock_gateway.get_checkout.return_value = make_gateway_checkout(
            GatewayCheckoutStatus.PENDING
        )

        response = api_client.post(WEBHOOK_URL, json=_sumup_event())

        assert response.status_code == HTTP_200_OK
        assert response.json()["status"] == "PENDING"
        assert store.get(booking_group[0].reservation_id).payment_status == PaymentStatus.PENDING
        mock_notifier.send_payment_confirmation.assert_not_called()

    def test_correlation_id_is_echoed(self, api_client, booking_group, checkout_rows) -> None:
        response = api_client.post(
            WEBHOOK_URL,
            json=_sumup_event(),
            headers={"X-Correlation-ID": "sumup-delivery-42"},
        )

        assert response.headers["X-Correlation-ID"] == "sumup-delivery-42"


class TestWebhookErrors:
    def test_missing_checkout_id(self, api_client, mock_gateway) -> None:
        response = api_client.post(WEBHOOK_URL, json={"event_type": "CHECKOUT_STATUS_CHANGED"})

        assert response.status_code == HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == "ERR_PAY_005"
        mock_gateway.get_checkout.assert_not_called()

    def test_invalid_json(self, api_client) -> None:
        response = api_client.post(
            WEBHOOK_URL,
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "ERR_PAY_005"

    def test_non_object_payload(self, api_client) -> None:
        response = api_client.post(WEBHOOK_URL, json=[TEST_CHECKOUT_ID])

        assert response.status_code == HTTP_400_BAD_REQUEST

    def test_unknown_checkout(self, api_client, mock_gateway) -> None:
        response = api_client.post(WEBHOOK_URL, json=_sumup_event("chk_unknown"))

        assert response.status_code == HTTP_404_NOT_FOUND
        assert response.json()["error_code"] == "ERR_PAY_001"
        mock_gateway.get_checkout.assert_not_called()

    def test_gateway_unavailable_asks_for_retry(
        self, api_client, store, mock_gateway, booking_group, checkout_rows
    ) -> None:
        mock_gateway.get_checkout.side_effect = SumUpServiceError("SumUp request timed out")

        response = api_client.post(WEBHOOK_URL, json=_sumup_event())

        assert response.status_code == HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["error_code"] == "ERR_PAY_003"
        assert store.get(booking_group[0].reservation_id).payment_status == PaymentStatus.PENDING

    def test_retry_after_outage_succeeds(
        self, api_client, mock_gateway, mock_notifier, booking_group, checkout_rows
    ) -> None:
        mock_gateway.get_checkout.side_effect = SumUpServiceError("SumUp API error: 502")
        assert api_client.post(WEBHOOK_URL, json=_sumup_event()).status_code == 503

        mock_gateway.get_checkout.side_effect = None
        response = api_client.post(WEBHOOK_URL, json=_sumup_event())

        assert response.status_code == HTTP_200_OK
        mock_notifier.send_payment_confirmation.assert_called_once()
