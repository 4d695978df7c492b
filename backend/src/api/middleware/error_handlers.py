"""Exception handlers rendering every failure as {error, message, detail}."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...models.entry import EntryError, ErrorKind

logger = logging.getLogger(__name__)

ERROR_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.AMBIGUOUS: 422,
    ErrorKind.INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
}

# Fallback (error, message) for HTTP errors raised without an EntryError
STATUS_DEFAULTS: Dict[int, Tuple[str, str]] = {
    status.HTTP_400_BAD_REQUEST: ("validation_error", "Invalid request payload"),
    status.HTTP_404_NOT_FOUND: (ErrorKind.NOT_FOUND.value, "Resource not found"),
    status.HTTP_405_METHOD_NOT_ALLOWED: ("method_not_allowed", "Method not allowed"),
    status.HTTP_409_CONFLICT: (ErrorKind.CONFLICT.value, "Entry version conflict"),
    413: ("payload_too_large", "Payload exceeds allowed size"),
}
INTERNAL_ERROR = ("internal_error", "Internal server error")


class EntryOperationError(Exception):
    """Raised by route handlers to surface an :class:`EntryError` over HTTP."""

    def __init__(self, error: EntryError) -> None:
        super().__init__(error.message)
        self.error = error
        self.status_code = ERROR_STATUS[error.error]


def error_response(
    status_code: int, error: str, message: str, detail: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "detail": detail or None},
    )


async def entry_error_handler(request: Request, exc: EntryOperationError) -> JSONResponse:
    return error_response(
        exc.status_code, exc.error.error.value, exc.error.message, exc.error.detail()
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    error, message = STATUS_DEFAULTS[status.HTTP_400_BAD_REQUEST]
    return error_response(
        status.HTTP_400_BAD_REQUEST, error, message, {"errors": jsonable_encoder(exc.errors())}
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    error, message = STATUS_DEFAULTS.get(exc.status_code, INTERNAL_ERROR)
    if isinstance(exc.detail, str) and exc.detail:
        message = exc.detail
    return error_response(exc.status_code, error, message)


async def internal_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    error, message = INTERNAL_ERROR
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, error, message)


def register_error_handlers(app: FastAPI) -> None:
    """Attach shared exception handlers to the FastAPI application."""
    app.add_exception_handler(EntryOperationError, entry_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, internal_exception_handler)


__all__ = [
    "EntryOperationError",
    "ERROR_STATUS",
    "error_response",
    "register_error_handlers",
    "entry_error_handler",
    "validation_exception_handler",
    "http_exception_handler",
    "internal_exception_handler",
]
