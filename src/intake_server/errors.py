"""Global exception handlers — map SDK exceptions to HTTP status codes.

Routes call the SDK and let its typed errors propagate; these handlers
pick the status code.  Validation failures are returned in full (they
describe the caller's own input).  Everything else is logged server-side
and answered with a fixed client-safe message.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from intake_forms.errors import (
    ConnectivityError,
    FormValidationError,
    IntakeError,
    RemoteStoreError,
    SessionError,
)

logger = logging.getLogger(__name__)

# --- Status codes for SDK errors, most specific first ---
_INTAKE_ERROR_STATUS: list[tuple[type[IntakeError], int]] = [
    (FormValidationError, 422),
    (ConnectivityError, 503),
    (SessionError, 502),
    (RemoteStoreError, 502),
]

# --- Client-safe messages keyed by HTTP status code ---
_SAFE_MESSAGES: dict[int, str] = {
    503: "No Internet Connection",
    502: "Could not reach the clinic records service. Please try again.",
    500: "Internal server error",
}


def _status_for(exc: IntakeError) -> int:
    for error_type, status in _INTAKE_ERROR_STATUS:
        if isinstance(exc, error_type):
            return status
    return 500


async def intake_error_handler(request: Request, exc: IntakeError) -> JSONResponse:
    """Map SDK errors to 422 / 503 / 502 (500 for anything unexpected)."""
    status = _status_for(exc)
    if isinstance(exc, FormValidationError):
        logger.info("Validation failed at %s: %s", request.url.path, list(exc.result.errors))
        return JSONResponse(
            status_code=status,
            content={
                "detail": "Please correct the highlighted fields.",
                "validation": exc.result.model_dump(mode="json"),
            },
        )

    logger.warning("%s [%d] at %s: %s", type(exc).__name__, status, request.url.path, exc)
    return JSONResponse(
        status_code=status,
        content={"detail": _SAFE_MESSAGES.get(status, "Internal server error")},
    )


async def key_error_handler(request: Request, exc: KeyError) -> JSONResponse:
    """Map ``KeyError`` (unknown form type or assessment) to 404."""
    logger.warning("KeyError at %s: %s", request.url, exc)
    return JSONResponse(status_code=404, content={"detail": "Resource not found"})


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
