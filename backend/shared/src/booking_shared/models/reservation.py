"""Reservation model for event bookings."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

from .enums import PaymentStatus


class Reservation(BaseModel):
    """A booking of one activity for an event.

    Reservations created from the same booking form share a group_id,
    customer identity and event. Amounts are Decimal euros.
    """

    model_config = ConfigDict(strict=True)

    reservation_id: str = Field(..., description="Unique reservation ID (UUID)")
    group_id: str | None = Field(
        default=None,
        description="Booking group shared by reservations created together",
    )
    event_id: str = Field(..., description="Reference to the event")
    event_name: str = Field(..., description="Event name at booking time")
    event_date: date | None = Field(default=None, description="Event date")
    activity_id: str | None = Field(default=None, description="Reference to activity")
    activity_name: str = Field(..., description="Activity name at booking time")
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    participants: dict[str, PositiveInt] = Field(
        default_factory=dict,
        description="Participant type label to count",
        examples=[{"adulte": 2, "enfant": 1}],
    )
    amount: Decimal = Field(..., ge=0, description="Amount in EUR")
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    paid_at: datetime | None = Field(
        default=None, description="Set once, on the transition into PAID"
    )
    gateway_checkout_id: str | None = Field(
        default=None, description="SumUp checkout that paid this reservation"
    )
    gateway_transaction_id: str | None = Field(
        default=None, description="SumUp transaction id of the payment"
    )
    archived: bool = False
    archived_at: datetime | None = None
    archived_by: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def group_key(self) -> str:
        """Group identifier; a lone reservation is its own group."""
        return self.group_id or self.reservation_id


class ReservationCreate(BaseModel):
    """Data for one reservation of a booking group.

    Customer identity and event are given once for the whole group.
    """

    model_config = ConfigDict(strict=True)

    activity_id: str | None = None
    activity_name: str
    participants: dict[str, PositiveInt] = Field(default_factory=dict)
    amount: Decimal = Field(..., ge=0)


class BookingGroupCreate(BaseModel):
    """A booking submission: one customer, one event, one or more activities."""

    model_config = ConfigDict(strict=True)

    event_id: str
    event_name: str
    event_date: date | None = None
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    reservations: list[ReservationCreate] = Field(..., min_length=1)
