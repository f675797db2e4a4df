"""Confirmation notification models."""

from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ConfirmationActivity(BaseModel):
    """One activity line of a confirmation message."""

    model_config = ConfigDict(strict=True)

    reservation_id: str
    activity_name: str
    participants: dict[str, int] = Field(default_factory=dict)
    amount: Decimal


class ConfirmationNotice(BaseModel):
    """Aggregated payment confirmation for a whole reservation group."""

    model_config = ConfigDict(strict=True)

    to: str = Field(..., description="Representative contact email")
    first_name: str
    last_name: str
    event_name: str
    event_date: date | None = None
    checkout_id: str
    activities: list[ConfirmationActivity] = Field(..., min_length=1)
    total_amount: Decimal


class NotificationResult(BaseModel):
    """Delivery outcome, returned as data instead of raised."""

    model_config = ConfigDict(strict=True)

    outcome: Literal["sent", "skipped", "failed"]
    message_id: str | None = None
    error: str | None = None

    @property
    def delivered(self) -> bool:
        return self.outcome == "sent"
