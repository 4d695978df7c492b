"""FastAPI middleware for error handling."""

from .error_handlers import (
    ERROR_STATUS,
    EntryOperationError,
    entry_error_handler,
    error_response,
    http_exception_handler,
    internal_exception_handler,
    register_error_handlers,
    validation_exception_handler,
)

__all__ = [
    "ERROR_STATUS",
    "EntryOperationError",
    "error_response",
    "register_error_handlers",
    "entry_error_handler",
    "validation_exception_handler",
    "http_exception_handler",
    "internal_exception_handler",
]
