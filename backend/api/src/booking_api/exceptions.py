"""FastAPI exception handlers for converting BookingError to HTTP responses.

Domain errors are answered with a ToolError-shaped JSON body. The ErrorCode
to HTTP status mapping:
- 400 Bad Request: validation and business rule violations
- 401 Unauthorized: operator identity missing
- 404 Not Found: unknown checkout or reservation
- 409 Conflict: reservation changed under a manual update
- 503 Service Unavailable: payment provider unreachable, retry later

Usage:
    from booking_api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from booking_api.models.common import format_validation_errors
from booking_shared.models.errors import BookingError, ErrorCode
from booking_shared.utils.logging import get_logger

logger = get_logger(__name__)

# Map ErrorCode to HTTP status codes
ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    # Not found -> 404
    ErrorCode.UNKNOWN_CHECKOUT: HTTP_404_NOT_FOUND,
    ErrorCode.UNKNOWN_RESERVATION: HTTP_404_NOT_FOUND,
    # Transient dependency failure -> 503, caller retries
    ErrorCode.GATEWAY_UNAVAILABLE: HTTP_503_SERVICE_UNAVAILABLE,
    # Business rule and input errors -> 400
    ErrorCode.CONFLICTING_ACTIVE_CHECKOUT: HTTP_400_BAD_REQUEST,
    ErrorCode.MALFORMED_PAYLOAD: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_STATUS_TRANSITION: HTTP_400_BAD_REQUEST,
    ErrorCode.RESERVATION_ALREADY_PAID: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_REQUEST: HTTP_400_BAD_REQUEST,
    # Lost optimistic update -> 409
    ErrorCode.CONCURRENT_UPDATE: HTTP_409_CONFLICT,
    # Authentication -> 401
    ErrorCode.AUTH_REQUIRED: HTTP_401_UNAUTHORIZED,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode, defaulting to 400."""
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_400_BAD_REQUEST)


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    """Handle BookingError exceptions and convert to JSON response.

    Args:
        request: The incoming request
        exc: The BookingError exception

    Returns:
        JSONResponse with ToolError body and mapped status code.
    """
    status_code = get_http_status_for_error(exc.code)
    if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s on %s: %s", exc.code.value, request.url.path, exc.details)
    else:
        logger.info("%s on %s", exc.code.value, request.url.path)

    return JSONResponse(
        status_code=status_code,
        content=exc.to_tool_error().model_dump(mode="json"),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Answer request validation failures with 400 and field details."""
    logger.info("Request validation failed on %s", request.url.path)
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content=format_validation_errors(exc.errors()).model_dump(mode="json"),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with a generic error response.

    The stack trace is logged; internal details are not exposed.
    """
    logger.exception("Unhandled exception on %s: %s", request.url.path, exc)

    error_response = {
        "success": False,
        "error_code": "ERR_INTERNAL",
        "message": "An unexpected error occurred",
        "recovery": "Please try again later or contact support",
        "details": None,
    }

    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(BookingError, booking_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
