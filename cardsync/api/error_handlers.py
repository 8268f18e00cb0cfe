"""Error Handlers — map gateway failures onto one JSON error envelope.

Invariants:
    - Every error body has the shape {"error": {code, message, category, severity, ...}}
    - Retryable CardSyncErrors (service unavailable) carry a Retry-After header
    - 4xx outcomes log at WARNING: a missing share link is routine, not an incident
    - Unhandled exceptions never leak internals; the traceback goes to the log only

Design Decisions:
    - Handlers live outside main.py so the app module only wires things together
    - Request validation answers 400, not FastAPI's default 422: share clients only
      distinguish "bad link" from "missing card"
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cardsync.core.errors import CardSyncError, ErrorSeverity

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 5


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CardSyncError, handle_cardsync_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)


async def handle_cardsync_error(request: Request, exc: CardSyncError) -> JSONResponse:
    log = logger.warning if exc.http_status < 500 else logger.error
    log(
        f"{request.method} {request.url.path} failed: {exc.message}",
        extra={"error_code": exc.code, "path": request.url.path},
    )
    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if exc.retryable else None
    return JSONResponse(
        status_code=exc.http_status, content=exc.to_response(), headers=headers,
    )


async def handle_validation_error(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.warning(
        f"Rejected request to {request.url.path}: {len(details)} invalid field(s)",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    body = _envelope(
        "VALIDATION_ERROR", "Invalid request data", "validation", ErrorSeverity.ERROR,
    )
    body["error"]["details"] = details
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}",
        extra={"path": request.url.path}, exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(
            "INTERNAL_ERROR", "An unexpected error occurred", "internal",
            ErrorSeverity.CRITICAL,
        ),
    )


def _envelope(code: str, message: str, category: str, severity: ErrorSeverity) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "category": category,
            "severity": severity.value,
        },
    }
