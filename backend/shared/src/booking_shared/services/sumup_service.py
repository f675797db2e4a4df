"""SumUp payment gateway client for hosted checkouts.

Talks to the SumUp REST API with httpx. The API key and merchant code are
retrieved from SSM Parameter Store. Setting PAYMENT_GATEWAY=mock selects
MockSumUpService, which never leaves the process.
"""

import datetime as dt
import os
import uuid
from decimal import Decimal
from functools import lru_cache
from typing import Any, Protocol

import httpx

from booking_shared.models import CreatedCheckout, GatewayCheckout, GatewayCheckoutStatus
from booking_shared.utils.logging import get_logger

from .ssm_service import SSMServiceError, get_ssm_service

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.sumup.com/v0.1"
DEFAULT_TIMEOUT_SECONDS = 10.0


class SumUpServiceError(Exception):
    """Raised when a SumUp operation fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize with message and optional HTTP status code.

        Args:
            message: Human-readable error message.
            status_code: HTTP status returned by SumUp, if any.
        """
        super().__init__(message)
        self.status_code = status_code


class PaymentGateway(Protocol):
    """Operations the booking service needs from a payment provider."""

    def get_checkout(self, checkout_id: str) -> GatewayCheckout: ...

    def create_checkout(
        self,
        *,
        amount: Decimal,
        currency: str,
        checkout_reference: str,
        description: str,
        redirect_url: str,
        return_url: str,
    ) -> CreatedCheckout: ...

    def close(self) -> None: ...


class SumUpService:
    """Client for SumUp checkout operations.

    Usage:
        sumup = get_gateway_client()
        checkout = sumup.get_checkout("c4b1...")
        if checkout.status == GatewayCheckoutStatus.PAID:
            ...
    """

    def __init__(
        self,
        environment: str | None = None,
        *,
        api_key: str | None = None,
        merchant_code: str | None = None,
        pay_to_email: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the SumUp client.

        Credentials not passed explicitly are loaded from SSM on first use.

        Args:
            environment: Environment name (dev, prod). Defaults to ENVIRONMENT env var.
            api_key: SumUp API key (bearer token).
            merchant_code: Merchant receiving the payment.
            pay_to_email: Merchant email, used when no merchant code is set.
            base_url: API root. Defaults to SUMUP_BASE_URL or the public API.
            timeout: Request timeout in seconds. Defaults to SUMUP_TIMEOUT_SECONDS.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self._environment = environment or os.getenv("ENVIRONMENT", "dev")
        self._api_key = api_key
        self._merchant_code = merchant_code
        self._pay_to_email = pay_to_email or os.getenv("SUMUP_PAY_TO_EMAIL")
        self._base_url = base_url or os.getenv("SUMUP_BASE_URL", DEFAULT_BASE_URL)
        self._timeout = timeout or float(
            os.getenv("SUMUP_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))
        )
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client (lazy initialization).

        Raises:
            SumUpServiceError: If the API key cannot be retrieved.
        """
        if self._client is None:
            if self._api_key is None:
                ssm = get_ssm_service()
                try:
                    self._api_key = ssm.get_parameter(
                        ssm.parameter_path("sumup/api_key")
                    )
                except SSMServiceError as e:
                    raise SumUpServiceError(
                        f"Failed to initialize SumUp client: {e}"
                    ) from e
                if self._merchant_code is None:
                    self._merchant_code = ssm.get_optional_parameter(
                        ssm.parameter_path("sumup/merchant_code")
                    )

            self._client = httpx.Client(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                transport=self._transport,
            )
            logger.info("SumUp client initialized for environment: %s", self._environment)
        return self._client

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        client = self._get_client()
        try:
            response = client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise SumUpServiceError(f"SumUp request timed out: {method} {path}") from e
        except httpx.HTTPError as e:
            raise SumUpServiceError(f"SumUp request failed: {e}") from e

        if response.is_error:
            message = response.reason_phrase
            try:
                body = response.json()
                if isinstance(body, dict):
                    message = body.get("message") or body.get("error_message") or message
            except ValueError:
                pass
            raise SumUpServiceError(
                f"SumUp API error: {response.status_code} - {message}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise SumUpServiceError("SumUp returned a non-JSON response") from e
        if not isinstance(data, dict):
            raise SumUpServiceError("SumUp returned an unexpected response shape")
        return data

    def get_checkout(self, checkout_id: str) -> GatewayCheckout:
        """Retrieve the authoritative state of a checkout.

        Args:
            checkout_id: SumUp checkout ID.

        Returns:
            GatewayCheckout with the parsed status.

        Raises:
            SumUpServiceError: On transport errors, timeouts or non-2xx responses.
        """
        data = self._request("GET", f"/checkouts/{checkout_id}")
        checkout = GatewayCheckout(
            checkout_id=str(data.get("id") or checkout_id),
            status=GatewayCheckoutStatus.parse(data.get("status")),
            amount=_to_decimal(data.get("amount")),
            currency=data.get("currency"),
            checkout_reference=data.get("checkout_reference"),
            transaction_id=_transaction_id(data),
        )
        logger.info(
            "SumUp checkout %s status=%s", checkout.checkout_id, checkout.status.value
        )
        return checkout

    def create_checkout(
        self,
        *,
        amount: Decimal,
        currency: str,
        checkout_reference: str,
        description: str,
        redirect_url: str,
        return_url: str,
    ) -> CreatedCheckout:
        """Create a hosted checkout.

        Args:
            amount: Total amount in major units (euros).
            currency: ISO currency code.
            checkout_reference: Merchant reference (group or reservation id).
            description: Text shown to the customer.
            redirect_url: Browser redirect after payment.
            return_url: Webhook URL SumUp notifies on status change.

        Returns:
            CreatedCheckout with the hosted checkout URL.

        Raises:
            SumUpServiceError: If checkout creation fails.
        """
        self._get_client()  # loads the merchant code

        payload: dict[str, Any] = {
            "amount": float(amount),
            "currency": currency,
            "checkout_reference": checkout_reference,
            "description": description,
            "redirect_url": redirect_url,
            "return_url": return_url,
            "hosted_checkout": {"enabled": True},
        }
        if self._merchant_code:
            payload["merchant_code"] = self._merchant_code
        elif self._pay_to_email:
            payload["pay_to_email"] = self._pay_to_email
        else:
            raise SumUpServiceError(
                "SumUp merchant code or SUMUP_PAY_TO_EMAIL is required"
            )

        data = self._request("POST", "/checkouts", json=payload)
        if not data.get("id") or not data.get("hosted_checkout_url"):
            raise SumUpServiceError(
                "Invalid SumUp response: missing id or hosted_checkout_url"
            )

        logger.info(
            "SumUp checkout created: %s for reference %s",
            data["id"],
            checkout_reference,
        )
        return CreatedCheckout(
            checkout_id=str(data["id"]),
            checkout_url=str(data["hosted_checkout_url"]),
            status=GatewayCheckoutStatus.parse(data.get("status")),
            created_at=dt.datetime.now(dt.UTC),
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None


class MockSumUpService:
    """In-process gateway for development: every checkout is reported PAID."""

    def __init__(self, app_url: str | None = None) -> None:
        self._app_url = app_url or os.getenv("APP_URL", "http://localhost:4321")

    def get_checkout(self, checkout_id: str) -> GatewayCheckout:
        logger.info("SumUp MOCK: checkout %s reported as PAID", checkout_id)
        return GatewayCheckout(
            checkout_id=checkout_id,
            status=GatewayCheckoutStatus.PAID,
            currency="EUR",
            transaction_id=f"mock_txn_{uuid.uuid4().hex[:12]}",
        )

    def create_checkout(
        self,
        *,
        amount: Decimal,
        currency: str,
        checkout_reference: str,
        description: str,
        redirect_url: str,
        return_url: str,
    ) -> CreatedCheckout:
        checkout_id = f"mock_checkout_{uuid.uuid4().hex[:12]}"
        logger.info(
            "SumUp MOCK: checkout %s created for %s (%s %s)",
            checkout_id,
            checkout_reference,
            amount,
            currency,
        )
        return CreatedCheckout(
            checkout_id=checkout_id,
            checkout_url=(
                f"{self._app_url}/payment/mock-checkout"
                f"?reference={checkout_reference}&amount={amount}"
            ),
            created_at=dt.datetime.now(dt.UTC),
        )

    def close(self) -> None:
        return None


def _to_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


def _transaction_id(data: dict[str, Any]) -> str | None:
    """Pick the transaction id, falling back to the first successful transaction."""
    if data.get("transaction_id"):
        return str(data["transaction_id"])
    for txn in data.get("transactions") or []:
        if isinstance(txn, dict) and txn.get("status") == "SUCCESSFUL" and txn.get("id"):
            return str(txn["id"])
    return None


@lru_cache(maxsize=1)
def get_gateway_client() -> PaymentGateway:
    """Get the shared payment gateway client.

    PAYMENT_GATEWAY=mock selects the in-process mock.
    """
    if os.getenv("PAYMENT_GATEWAY", "sumup").lower() == "mock":
        logger.warning("Using mock SumUp gateway; checkouts are reported as PAID")
        return MockSumUpService()
    return SumUpService()
