"""Payment gateway checkout models."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .enums import GatewayCheckoutStatus


class GatewayCheckout(BaseModel):
    """Authoritative checkout state returned by SumUp."""

    model_config = ConfigDict(strict=True)

    checkout_id: str = Field(..., description="SumUp checkout ID")
    status: GatewayCheckoutStatus
    amount: Decimal | None = None
    currency: str | None = None
    checkout_reference: str | None = None
    transaction_id: str | None = Field(
        default=None, description="SumUp transaction id, present once paid"
    )


class CreatedCheckout(BaseModel):
    """A freshly created hosted checkout."""

    model_config = ConfigDict(strict=True)

    checkout_id: str
    checkout_url: str = Field(..., description="Hosted checkout page URL")
    status: GatewayCheckoutStatus = GatewayCheckoutStatus.PENDING
    created_at: datetime


class CheckoutSession(BaseModel):
    """Result of checkout initiation for a reservation group."""

    model_config = ConfigDict(strict=True)

    checkout_id: str
    checkout_url: str
    existing: bool = Field(
        default=False,
        description="True when a recent active checkout was returned unchanged",
    )
    reservations_count: int = Field(..., ge=1)
