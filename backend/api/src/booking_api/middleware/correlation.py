"""Correlation ID middleware for request tracing.

The correlation id of a request is, in order: the X-Correlation-ID header,
the X-Request-ID header set by proxies, the Lambda request id Mangum puts
on the scope, or a fresh UUID. It is echoed back in X-Correlation-ID so a
SumUp delivery or a client poll can be matched with the service logs.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from booking_shared.utils.logging import clear_correlation_id, set_correlation_id

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"


def _lambda_request_id(request: Request) -> str | None:
    context = request.scope.get("aws.context")
    return getattr(context, "aws_request_id", None) if context is not None else None


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds a correlation id to the request's logging context."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        correlation_id = set_correlation_id(
            request.headers.get(CORRELATION_ID_HEADER)
            or request.headers.get(REQUEST_ID_HEADER)
            or _lambda_request_id(request)
        )
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
        finally:
            clear_correlation_id()
