"""Reconciliation result models."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .enums import GatewayCheckoutStatus, PaymentStatus, TransactionStatus

StatusMappingKind = Literal["completed", "failed", "cancelled", "expired", "unchanged"]


class StatusMapping(BaseModel):
    """Transaction-log effect of a gateway checkout status.

    `kind` tags the variant; `transaction_status` is None for "unchanged".
    """

    model_config = ConfigDict(strict=True, frozen=True)

    kind: StatusMappingKind
    gateway_status: GatewayCheckoutStatus
    transaction_status: TransactionStatus | None = None

    @property
    def is_paid(self) -> bool:
        return self.kind == "completed"

    @property
    def changes_transactions(self) -> bool:
        return self.transaction_status is not None


class ReconciliationResult(BaseModel):
    """Outcome of reconciling one checkout."""

    model_config = ConfigDict(strict=True)

    checkout_id: str
    status: GatewayCheckoutStatus = Field(
        ..., description="Gateway status the reconciliation acted upon"
    )
    updated: bool = Field(
        default=False,
        description="True only for the call that moved the group to PAID",
    )
    already_processed: bool = Field(
        default=False,
        description="Every reservation was already PAID; nothing was done",
    )
    reservations_count: int = Field(..., ge=0)


class PaymentStatusCheck(BaseModel):
    """Answer to a client-side status poll."""

    model_config = ConfigDict(strict=True)

    status: PaymentStatus | GatewayCheckoutStatus
    message: str
    updated: bool = False
    reservations_count: int = Field(..., ge=0)
    checkout_id: str | None = None
