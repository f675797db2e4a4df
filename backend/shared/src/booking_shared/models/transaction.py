"""Payment transaction model for the checkout attempt ledger."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .enums import TransactionStatus


class PaymentTransaction(BaseModel):
    """One SumUp checkout attempt for one reservation.

    All reservations paid through the same checkout get one row each,
    sharing checkout_id. The status tracks the checkout attempt, not the
    reservation.
    """

    model_config = ConfigDict(strict=True)

    transaction_id: str = Field(..., description="Unique transaction row ID")
    reservation_id: str = Field(..., description="Reference to Reservation")
    checkout_id: str = Field(..., description="SumUp checkout ID")
    checkout_url: str | None = Field(
        default=None, description="Hosted checkout URL for the customer"
    )
    amount: Decimal = Field(..., ge=0, description="Reservation amount in EUR")
    currency: str = Field(default="EUR", description="Currency code")
    status: TransactionStatus = Field(..., description="Checkout attempt status")
    gateway_transaction_id: str | None = Field(
        default=None, description="SumUp transaction id once paid"
    )
    initiated_at: datetime = Field(..., description="Checkout creation timestamp")
    completed_at: datetime | None = Field(default=None)
    expired_at: datetime | None = Field(default=None)
    updated_at: datetime | None = Field(default=None)

    @property
    def is_active(self) -> bool:
        return self.status.is_active
