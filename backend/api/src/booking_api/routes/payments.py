"""Public payment endpoints.

Provides REST endpoints for:
- Starting a SumUp hosted checkout for a reservation group
- Polling the payment status after the customer returns from SumUp
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from booking_api.dependencies import get_checkout_service, get_reconciliation_engine
from booking_api.models.common import ToolError
from booking_api.models.payments import (
    CheckoutRequest,
    CheckoutResponse,
    CheckStatusResponse,
)
from booking_shared.services.checkout_service import CheckoutService
from booking_shared.services.reconciliation import ReconciliationEngine

router = APIRouter(tags=["payments"])


def _as_str(value: UUID | None) -> str | None:
    return str(value) if value is not None else None


@router.get(
    "/payments/check-status",
    summary="Check payment status",
    description="""
Fallback for the SumUp webhook: the client polls this after returning from
the hosted checkout.

Pass exactly one of `groupId` or `reservationId`. SumUp is only queried
when a checkout is still in progress; a paid group answers immediately.
""",
    response_model=CheckStatusResponse,
    responses={
        400: {"description": "Neither or both identifiers given", "model": ToolError},
        404: {"description": "Reservation not found", "model": ToolError},
        503: {"description": "SumUp unavailable, retry later", "model": ToolError},
    },
)
def check_payment_status(
    group_id: UUID | None = Query(default=None, alias="groupId"),
    reservation_id: UUID | None = Query(default=None, alias="reservationId"),
    engine: ReconciliationEngine = Depends(get_reconciliation_engine),
) -> CheckStatusResponse:
    """Poll and reconcile the payment status of a group."""
    check = engine.check_status(
        group_id=_as_str(group_id),
        reservation_id=_as_str(reservation_id),
    )
    return CheckStatusResponse.from_check(check)


@router.post(
    "/payments/checkout",
    summary="Start payment",
    description="""
Create a SumUp hosted checkout covering every reservation of a group
(or a single reservation) and return the URL to redirect the customer to.

A checkout started less than an hour ago is returned again with
`existing: true` instead of creating a new one.
""",
    response_model=CheckoutResponse,
    responses={
        400: {"description": "Already paid or invalid request", "model": ToolError},
        404: {"description": "Reservation not found", "model": ToolError},
        503: {"description": "SumUp unavailable, retry later", "model": ToolError},
    },
)
def create_checkout(
    body: CheckoutRequest,
    checkout_service: CheckoutService = Depends(get_checkout_service),
) -> CheckoutResponse:
    """Start or resume payment for a group."""
    session = checkout_service.initiate_checkout(
        group_id=_as_str(body.group_id),
        reservation_id=_as_str(body.reservation_id),
    )
    return CheckoutResponse.from_session(session)
