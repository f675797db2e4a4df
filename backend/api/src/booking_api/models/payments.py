"""API models for payment and webhook endpoints."""

from uuid import UUID

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from booking_shared.models import CheckoutSession, PaymentStatusCheck, ReconciliationResult

from .common import CamelModel


class CheckoutRequest(CamelModel):
    """Request to start payment for a group or a single reservation.

    Exactly one of groupId or reservationId must be given.
    """

    model_config = ConfigDict(
        # Note: strict=False allows string-to-UUID coercion from JSON
        strict=False,
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {"groupId": "6f1c2f4e-8a0b-4d7e-9a51-0c5d3e2b7a10"},
                {"reservationId": "0b8e4c1d-2f3a-4b5c-8d9e-1a2b3c4d5e6f"},
            ]
        },
    )

    group_id: UUID | None = Field(default=None, description="Reservation group ID")
    reservation_id: UUID | None = Field(default=None, description="Single reservation ID")


class CheckoutResponse(CamelModel):
    """Hosted checkout the customer should be redirected to."""

    checkout_url: str = Field(..., description="SumUp hosted checkout URL")
    checkout_id: str = Field(..., description="SumUp checkout ID")
    existing: bool = Field(
        default=False, description="True when a recent checkout was reused"
    )
    reservations_count: int

    @classmethod
    def from_session(cls, session: CheckoutSession) -> "CheckoutResponse":
        return cls(
            checkout_url=session.checkout_url,
            checkout_id=session.checkout_id,
            existing=session.existing,
            reservations_count=session.reservations_count,
        )


class CheckStatusResponse(CamelModel):
    """Payment status of a group as seen by the polling client."""

    status: str = Field(..., examples=["PAID"])
    message: str = Field(..., examples=["Payment confirmed"])
    updated: bool = Field(
        default=False, description="True if this poll moved the group to PAID"
    )
    reservations_count: int

    @classmethod
    def from_check(cls, check: PaymentStatusCheck) -> "CheckStatusResponse":
        return cls(
            status=check.status.value,
            message=check.message,
            updated=check.updated,
            reservations_count=check.reservations_count,
        )


class WebhookResponse(CamelModel):
    """Acknowledgement returned to SumUp."""

    success: bool = True
    checkout_id: str
    status: str

    @classmethod
    def from_result(cls, result: ReconciliationResult) -> "WebhookResponse":
        return cls(checkout_id=result.checkout_id, status=result.status.value)
