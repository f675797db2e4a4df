"""Pytest configuration and fixtures for booking payments backend tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (reservations and payment-transactions tables)
- Sample reservation groups and checkout rows
- Gateway and notifier doubles
"""

import datetime as dt
import os
from decimal import Decimal
from typing import Any, Generator
from unittest.mock import MagicMock, patch

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-booking")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.pop("PAYMENT_GATEWAY", None)
os.environ.pop("SES_FROM_EMAIL", None)

# Only set fake credentials for moto if no real credentials are present
if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from booking_shared.models import (  # noqa: E402
    BookingGroupCreate,
    CreatedCheckout,
    GatewayCheckout,
    GatewayCheckoutStatus,
    NotificationResult,
    PaymentTransaction,
    Reservation,
    ReservationCreate,
)

TEST_CHECKOUT_ID = "chk_7f3a9c1e2b4d"
TEST_CHECKOUT_URL = "https://checkout.sumup.com/pay/chk_7f3a9c1e2b4d"
TEST_GATEWAY_TXN_ID = "TX-SUMUP-88812"


# === Singleton Reset ===


@pytest.fixture(autouse=True)
def reset_service_singletons() -> Generator[None, None, None]:
    """Reset cached services before and after each test.

    Tests using mock_aws get fresh boto3 clients created inside the mock
    context rather than clients left over from a previous test.
    """
    from booking_api.dependencies import reset_services
    from booking_shared.services.ssm_service import SSMService, get_ssm_service

    reset_services()
    SSMService._cache.clear()
    get_ssm_service.cache_clear()
    yield
    reset_services()
    SSMService._cache.clear()
    get_ssm_service.cache_clear()


# === DynamoDB Fixtures ===


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    if not os.environ.get("AWS_PROFILE"):
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "eu-west-1"
    os.environ["DYNAMODB_TABLE_PREFIX"] = "test-booking"


@pytest.fixture
def dynamodb_client(aws_credentials: None) -> Generator[Any, None, None]:
    """Create a mocked DynamoDB client."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name="eu-west-1")
        yield client


@pytest.fixture
def create_tables(dynamodb_client: Any) -> None:
    """Create the reservations and payment-transactions tables."""
    tables = [
        {
            "TableName": "test-booking-reservations",
            "KeySchema": [{"AttributeName": "reservation_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": "reservation_id", "AttributeType": "S"},
                {"AttributeName": "group_id", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [
                {
                    "IndexName": "group_id-index",
                    "KeySchema": [{"AttributeName": "group_id", "KeyType": "HASH"}],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": "test-booking-payment-transactions",
            "KeySchema": [{"AttributeName": "transaction_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": "transaction_id", "AttributeType": "S"},
                {"AttributeName": "checkout_id", "AttributeType": "S"},
                {"AttributeName": "reservation_id", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [
                {
                    "IndexName": "checkout_id-index",
                    "KeySchema": [{"AttributeName": "checkout_id", "KeyType": "HASH"}],
                    "Projection": {"ProjectionType": "ALL"},
                },
                {
                    "IndexName": "reservation_id-index",
                    "KeySchema": [{"AttributeName": "reservation_id", "KeyType": "HASH"}],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
    ]

    for table_config in tables:
        dynamodb_client.create_table(**table_config)


@pytest.fixture
def db(create_tables: None) -> Any:
    """DynamoDBService bound to the mocked tables."""
    from booking_shared.services.dynamodb import get_dynamodb_service

    return get_dynamodb_service()


@pytest.fixture
def store(db: Any) -> Any:
    from booking_shared.services.reservation_store import ReservationStore

    return ReservationStore(db)


@pytest.fixture
def transaction_log(db: Any) -> Any:
    from booking_shared.services.transaction_log import TransactionLog

    return TransactionLog(db)


# === Collaborator Doubles ===


def make_gateway_checkout(
    status: GatewayCheckoutStatus,
    checkout_id: str = TEST_CHECKOUT_ID,
    transaction_id: str | None = TEST_GATEWAY_TXN_ID,
) -> GatewayCheckout:
    """Gateway answer for a checkout."""
    return GatewayCheckout(
        checkout_id=checkout_id,
        status=status,
        currency="EUR",
        transaction_id=transaction_id if status == GatewayCheckoutStatus.PAID else None,
    )


@pytest.fixture
def mock_gateway() -> MagicMock:
    """Payment gateway double reporting the checkout as PAID."""
    gateway = MagicMock()
    gateway.get_checkout.return_value = make_gateway_checkout(GatewayCheckoutStatus.PAID)
    gateway.create_checkout.return_value = CreatedCheckout(
        checkout_id=TEST_CHECKOUT_ID,
        checkout_url=TEST_CHECKOUT_URL,
        created_at=dt.datetime.now(dt.UTC),
    )
    return gateway


@pytest.fixture
def mock_notifier() -> MagicMock:
    """Notifier double that always delivers."""
    notifier = MagicMock()
    notifier.send_payment_confirmation.return_value = NotificationResult(
        outcome="sent", message_id="ses-message-1"
    )
    return notifier


@pytest.fixture
def engine(
    db: Any, store: Any, transaction_log: Any, mock_gateway: MagicMock, mock_notifier: MagicMock
) -> Any:
    from booking_shared.services.reconciliation import ReconciliationEngine

    return ReconciliationEngine(
        db=db,
        store=store,
        transactions=transaction_log,
        gateway=mock_gateway,
        notifier=mock_notifier,
    )


# === Sample Data Fixtures ===


@pytest.fixture
def sample_booking() -> BookingGroupCreate:
    """A two-activity booking for one customer."""
    return BookingGroupCreate(
        event_id="evt-fete-des-vendanges",
        event_name="Fête des Vendanges",
        event_date=dt.date(2026, 9, 19),
        first_name="Camille",
        last_name="Martin",
        email="camille.martin@example.com",
        phone="+33612345678",
        reservations=[
            ReservationCreate(
                activity_id="act-rando",
                activity_name="Randonnée des coteaux",
                participants={"adulte": 2},
                amount=Decimal("30.00"),
            ),
            ReservationCreate(
                activity_id="act-degustation",
                activity_name="Dégustation",
                participants={"adulte": 2, "enfant": 1},
                amount=Decimal("15.00"),
            ),
        ],
    )


@pytest.fixture
def booking_group(store: Any, sample_booking: BookingGroupCreate) -> list[Reservation]:
    """Two PENDING reservations stored as one group."""
    return store.create_group(sample_booking)


@pytest.fixture
def checkout_rows(
    transaction_log: Any, booking_group: list[Reservation]
) -> list[PaymentTransaction]:
    """One INITIATED transaction row per reservation, sharing TEST_CHECKOUT_ID."""
    return transaction_log.record_checkout(
        booking_group,
        CreatedCheckout(
            checkout_id=TEST_CHECKOUT_ID,
            checkout_url=TEST_CHECKOUT_URL,
            created_at=dt.datetime.now(dt.UTC),
        ),
    )


# === API Client ===


@pytest.fixture
def api_client(
    create_tables: None, mock_gateway: MagicMock, mock_notifier: MagicMock
) -> Generator[Any, None, None]:
    """TestClient with the gateway and notifier replaced by doubles.

    The lifespan is not entered, so no startup ping runs against moto.
    """
    from fastapi.testclient import TestClient

    from booking_api.main import app

    with (
        patch("booking_api.dependencies.get_gateway_client", return_value=mock_gateway),
        patch("booking_api.dependencies.get_notification_service", return_value=mock_notifier),
    ):
        yield TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def operator_headers() -> dict[str, str]:
    """Headers the API gateway authorizer injects for a signed-in operator."""
    return {"x-user-name": "admin@example.com", "x-user-sub": "0a1b2c3d-sub"}
