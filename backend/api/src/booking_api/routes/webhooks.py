"""Webhook endpoint for SumUp checkout status notifications.

The payload is only used to find the checkout id; the status itself is
always re-read from SumUp. No authentication: an unauthenticated caller
can at most make the service ask SumUp for the truth.
"""

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from booking_api.dependencies import get_reconciliation_engine
from booking_api.models.common import ToolError
from booking_api.models.payments import WebhookResponse
from booking_shared.models.errors import BookingError, MalformedPayload
from booking_shared.services.reconciliation import (
    ReconciliationEngine,
    extract_checkout_id,
)
from booking_shared.utils.logging import get_logger, log_webhook_event

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])


async def _read_payload(request: Request) -> Any:
    """Decode the JSON body; anything unreadable counts as no payload."""
    body = await request.body()
    if not body:
        return None
    try:
        return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None


@router.post(
    "/webhooks/sumup",
    summary="Receive SumUp checkout notifications",
    description="""
SumUp calls this endpoint when a checkout changes status.

The checkout id is read from `checkout_id`, `checkoutId`, `id`, `data.id`
or `event_data.id`. The authoritative status is fetched from SumUp and the
reservation group is reconciled.

**Idempotent**: repeated deliveries for a paid checkout return 200 without
any write or email.
""",
    response_model=WebhookResponse,
    responses={
        200: {"description": "Checkout reconciled", "model": WebhookResponse},
        400: {"description": "No checkout id in payload", "model": ToolError},
        404: {"description": "Checkout unknown to this platform", "model": ToolError},
        503: {"description": "SumUp unavailable, retry later", "model": ToolError},
    },
)
async def handle_sumup_webhook(
    request: Request,
    engine: ReconciliationEngine = Depends(get_reconciliation_engine),
) -> WebhookResponse:
    """Reconcile the checkout named in the webhook payload."""
    payload = await _read_payload(request)
    checkout_id = extract_checkout_id(payload)

    if checkout_id is None:
        log_webhook_event(
            logger,
            "sumup",
            None,
            result="malformed",
            payload_type=type(payload).__name__,
        )
        raise MalformedPayload(details={"payload_type": type(payload).__name__})

    log_webhook_event(logger, "sumup", checkout_id, result="received")

    try:
        result = await run_in_threadpool(engine.reconcile, checkout_id)
    except BookingError as e:
        log_webhook_event(
            logger,
            "sumup",
            checkout_id,
            result="error",
            error=e.code.value,
        )
        raise

    log_webhook_event(
        logger,
        "sumup",
        checkout_id,
        result="duplicate" if result.already_processed else "success",
        status=result.status.value,
        updated=result.updated,
    )
    return WebhookResponse.from_result(result)
