"""Admin endpoints for a single reservation.

Provides REST endpoints for:
- Manually setting the payment status (PUT)
- Archiving and unarchiving (PATCH)
- Deleting a reservation with its payment transactions (DELETE)

The operator identity is injected by the API gateway authorizer as
x-user-name / x-user-sub headers.
"""

from fastapi import APIRouter, Depends

from booking_api.dependencies import get_operator, get_payment_admin_service
from booking_api.models.admin import (
    AdminReservation,
    AdminReservationResponse,
    ArchiveRequest,
    PaymentStatusUpdateRequest,
)
from booking_api.models.common import SuccessMessage, ToolError
from booking_shared.services.payment_admin import PaymentAdminService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.put(
    "/reservations/{reservation_id}",
    summary="Set payment status manually",
    description="""
Record a payment made outside SumUp (cash, bank transfer), a refund,
or a cancellation.

**Requires an authenticated operator.**

Marking as PAID is refused while a SumUp checkout is still in progress.
Allowed changes: PENDING to PAID/FAILED/CANCELLED, PAID to REFUNDED.
Re-sending the current status only updates the notes. No email is sent.
""",
    response_model=AdminReservationResponse,
    responses={
        400: {"description": "Transition refused", "model": ToolError},
        401: {"description": "Operator identity missing", "model": ToolError},
        404: {"description": "Reservation not found", "model": ToolError},
        409: {"description": "Reservation changed concurrently", "model": ToolError},
    },
)
def update_payment_status(
    reservation_id: str,
    body: PaymentStatusUpdateRequest,
    operator: str | None = Depends(get_operator),
    admin: PaymentAdminService = Depends(get_payment_admin_service),
) -> AdminReservationResponse:
    """Apply a manual payment status override."""
    reservation = admin.override_payment_status(
        reservation_id,
        body.payment_status,
        operator=operator,
        gateway_transaction_id=body.sumup_transaction_id,
        notes=body.notes,
    )
    return AdminReservationResponse(reservation=AdminReservation.from_domain(reservation))


@router.patch(
    "/reservations/{reservation_id}",
    summary="Archive or unarchive",
    response_model=AdminReservationResponse,
    responses={
        401: {"description": "Operator identity missing", "model": ToolError},
        404: {"description": "Reservation not found", "model": ToolError},
    },
)
def archive_reservation(
    reservation_id: str,
    body: ArchiveRequest,
    operator: str | None = Depends(get_operator),
    admin: PaymentAdminService = Depends(get_payment_admin_service),
) -> AdminReservationResponse:
    """Set the archive flag; payment state is untouched."""
    reservation = admin.set_archived(reservation_id, body.archived, operator=operator)
    return AdminReservationResponse(reservation=AdminReservation.from_domain(reservation))


@router.delete(
    "/reservations/{reservation_id}",
    summary="Delete reservation",
    response_model=SuccessMessage,
    responses={
        401: {"description": "Operator identity missing", "model": ToolError},
        404: {"description": "Reservation not found", "model": ToolError},
    },
)
def delete_reservation(
    reservation_id: str,
    operator: str | None = Depends(get_operator),
    admin: PaymentAdminService = Depends(get_payment_admin_service),
) -> SuccessMessage:
    """Delete a reservation and its payment transactions."""
    admin.delete_reservation(reservation_id, operator=operator)
    return SuccessMessage(message=f"Reservation {reservation_id} deleted")
