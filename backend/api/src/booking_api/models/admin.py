"""API models for reservation administration endpoints."""

import datetime as dt

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from booking_shared.models import PaymentStatus, Reservation

from .common import CamelModel

# Note: strict=False allows string-to-enum coercion from JSON
_REQUEST_CONFIG = ConfigDict(strict=False, alias_generator=to_camel, populate_by_name=True)


class PaymentStatusUpdateRequest(CamelModel):
    """Manual payment status change by an operator."""

    model_config = _REQUEST_CONFIG

    payment_status: PaymentStatus = Field(..., examples=["PAID"])
    sumup_transaction_id: str | None = Field(
        default=None,
        description="Gateway transaction reference; ignored if one is already stored",
    )
    notes: str | None = Field(default=None, max_length=2000)


class ArchiveRequest(CamelModel):
    """Archive or unarchive a reservation."""

    model_config = _REQUEST_CONFIG

    archived: bool


class AdminReservation(CamelModel):
    """Reservation as shown in the admin dashboard."""

    id: str
    group_id: str | None = None
    event_id: str
    event_name: str
    event_date: dt.date | None = None
    activity_name: str
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    participants: dict[str, int]
    amount: float
    payment_status: PaymentStatus
    paid_at: dt.datetime | None = None
    sumup_checkout_id: str | None = None
    sumup_transaction_id: str | None = None
    archived: bool
    archived_at: dt.datetime | None = None
    archived_by: str | None = None
    notes: str | None = None
    created_at: dt.datetime
    updated_at: dt.datetime

    @classmethod
    def from_domain(cls, reservation: Reservation) -> "AdminReservation":
        return cls(
            id=reservation.reservation_id,
            group_id=reservation.group_id,
            event_id=reservation.event_id,
            event_name=reservation.event_name,
            event_date=reservation.event_date,
            activity_name=reservation.activity_name,
            first_name=reservation.first_name,
            last_name=reservation.last_name,
            email=reservation.email,
            phone=reservation.phone,
            participants=dict(reservation.participants),
            amount=float(reservation.amount),
            payment_status=reservation.payment_status,
            paid_at=reservation.paid_at,
            sumup_checkout_id=reservation.gateway_checkout_id,
            sumup_transaction_id=reservation.gateway_transaction_id,
            archived=reservation.archived,
            archived_at=reservation.archived_at,
            archived_by=reservation.archived_by,
            notes=reservation.notes,
            created_at=reservation.created_at,
            updated_at=reservation.updated_at,
        )


class AdminReservationResponse(CamelModel):
    """Envelope for a single updated reservation."""

    success: bool = True
    reservation: AdminReservation
