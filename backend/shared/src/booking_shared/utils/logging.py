"""Structured logging utilities with correlation ID support.

Provides:
- Correlation ID context management for request tracing
- Structured logging formatter for consistent log output
- Helper functions for payment and webhook logging

Usage:
    from booking_shared.utils.logging import get_logger, set_correlation_id

    # In middleware/request handler:
    set_correlation_id(request.headers.get("X-Correlation-ID"))

    # In service code:
    logger = get_logger(__name__)
    log_payment_operation(logger, "reconcile_started", checkout_id="ck_1")
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any

# Context variable for correlation ID - thread-safe and async-safe
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set the correlation ID for the current request context.

    Args:
        correlation_id: Optional existing correlation ID. If None, generates new one.

    Returns:
        The correlation ID that was set
    """
    cid = correlation_id or generate_correlation_id()
    _correlation_id.set(cid)
    return cid


def get_correlation_id() -> str | None:
    """Get the current correlation ID."""
    return _correlation_id.get()


def clear_correlation_id() -> None:
    """Clear the correlation ID context."""
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds correlation_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "no-correlation-id"
        return True


class StructuredFormatter(logging.Formatter):
    """Formatter for structured log output with correlation ID."""

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = get_correlation_id() or "no-correlation-id"

        base = super().format(record)

        # Prefix for easy grep/filtering
        return f"[{record.correlation_id}] {base}"


def configure_logging(level: int = logging.INFO) -> None:
    """Install the structured formatter on the root logger.

    Safe to call more than once; an existing handler is reused.
    """
    root = logging.getLogger()
    root.setLevel(level)
    if not root.handlers:
        root.addHandler(logging.StreamHandler())
    for handler in root.handlers:
        handler.setFormatter(StructuredFormatter(LOG_FORMAT))


def get_logger(name: str) -> logging.Logger:
    """Get a logger with correlation ID support.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())

    return logger


def _context(**fields: Any) -> dict[str, Any]:
    """Drop empty fields; falsy values other than None and "" are kept."""
    return {key: value for key, value in fields.items() if value is not None and value != ""}


def _render(title: str, context: dict[str, Any], skip: tuple[str, ...]) -> str:
    parts = [title] + [f"{key}={value}" for key, value in context.items() if key not in skip]
    return " | ".join(parts)


def log_payment_operation(
    logger: logging.Logger,
    operation: str,
    *,
    checkout_id: str | None = None,
    reservation_id: str | None = None,
    group_id: str | None = None,
    status: str | None = None,
    error: str | None = None,
    level: int | None = None,
    **extra: Any,
) -> None:
    """Log one reconciliation or checkout step.

    The fields are attached to the record as `extra` and repeated in the
    message as key=value pairs, e.g.
    "Payment operation: transition_won | checkout_id=ck_1 | status=PAID".

    Args:
        logger: Logger instance
        operation: Step name (reconcile_started, transition_won, ...)
        checkout_id: SumUp checkout ID if available
        reservation_id: Reservation ID if available
        group_id: Reservation group ID if available
        status: Payment, transaction or gateway status
        error: Error message if the step failed
        level: Explicit log level; defaults to ERROR with error, INFO otherwise
        **extra: Additional context fields
    """
    context = _context(
        operation=operation,
        checkout_id=checkout_id,
        reservation_id=reservation_id,
        group_id=group_id,
        status=status,
        error=error,
        **extra,
    )
    if level is None:
        level = logging.ERROR if error else logging.INFO
    logger.log(level, _render(f"Payment operation: {operation}", context, ("operation",)), extra=context)


# Webhook results and the level they are logged at
_WEBHOOK_LEVELS = {"error": logging.ERROR, "malformed": logging.WARNING}


def log_webhook_event(
    logger: logging.Logger,
    source: str,
    checkout_id: str | None,
    *,
    result: str | None = None,
    status: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a webhook delivery.

    Args:
        logger: Logger instance
        source: Webhook sender (e.g., "sumup")
        checkout_id: Checkout ID extracted from the payload, if any
        result: received, success, duplicate, malformed or error
        status: Gateway status the delivery resolved to
        error: Error code if processing failed
        **extra: Additional context fields
    """
    context = _context(
        webhook_source=source,
        checkout_id=checkout_id,
        result=result,
        status=status,
        error=error,
        **extra,
    )
    title = f"Webhook event: {source} ({checkout_id or 'no-checkout-id'})"
    logger.log(
        _WEBHOOK_LEVELS.get(result or "", logging.INFO),
        _render(title, context, ("webhook_source", "checkout_id")),
        extra=context,
    )
