"""
Centralised error handling — exception hierarchy + FastAPI handlers.

Provides:
    • Domain-specific exception classes
    • Consistent JSON error response format: {"error": ..., "code": ...}
    • Translation of SDK exceptions into BackingStoreError at the store boundary
    • Automatic logging of unhandled errors

Usage:
    from storedemo.app.core.errors import (
        NotFoundError,
        ConfigurationError,
        BackingStoreError,
        register_error_handlers,
    )

    raise ConfigurationError("S3_BUCKET not configured")
"""

from __future__ import annotations

import logging
import traceback
from functools import wraps
from typing import Any, Callable, Dict, Optional, Tuple, Type

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storedemo.app.core.config import Settings

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Exception Hierarchy
# ═══════════════════════════════════════════════════════════════════════════

class StoreDemoError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class NotFoundError(StoreDemoError):
    """Resource not found (404)."""

    def __init__(self, resource: str, **identifiers: Any):
        super().__init__(
            message="Not found",
            status_code=404,
            error_code="NOT_FOUND",
            details={"resource": resource, **identifiers},
        )


class ConfigurationError(StoreDemoError):
    """A capability is unavailable because its configuration is missing (400)."""

    def __init__(self, message: str, *, setting: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="CONFIGURATION_MISSING",
            details={"setting": setting} if setting else None,
        )


class ConflictError(StoreDemoError):
    """Resource already exists (409)."""

    def __init__(self, resource: str, **identifiers: Any):
        super().__init__(
            message=f"{resource} already exists",
            status_code=409,
            error_code="CONFLICT",
            details={"resource": resource, **identifiers},
        )


class BackingStoreError(StoreDemoError):
    """A call to S3, Postgres or Redis failed (500)."""

    def __init__(self, store: str, operation: str, message: str = ""):
        super().__init__(
            message=f"{store} {operation} failed: {message}" if message else f"{store} {operation} failed",
            status_code=500,
            error_code="BACKING_STORE_ERROR",
            details={"store": store, "operation": operation},
        )
        self.store = store
        self.operation = operation


class SelfTestMismatchError(StoreDemoError):
    """Read-back content differed from what the self-test wrote."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="SELFTEST_MISMATCH")


class StartupError(StoreDemoError):
    """A mandatory dependency was not available at boot."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="STARTUP_FAILED")


# ═══════════════════════════════════════════════════════════════════════════
# Store boundary translation
# ═══════════════════════════════════════════════════════════════════════════

def translate_errors(
    store: str,
    operation: str,
    exceptions: Tuple[Type[BaseException], ...],
) -> Callable:
    """
    Decorator for async store methods: re-raise SDK exceptions as
    BackingStoreError so callers only deal with one error type.
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except exceptions as e:
                raise BackingStoreError(store, operation, str(e)) from e
        return wrapper
    return decorator


# ═══════════════════════════════════════════════════════════════════════════
# Error Response Builder
# ═══════════════════════════════════════════════════════════════════════════

def build_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: Dict[str, Any] = {"error": message, "code": error_code}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


# ═══════════════════════════════════════════════════════════════════════════
# FastAPI Exception Handlers
# ═══════════════════════════════════════════════════════════════════════════

def register_error_handlers(app: FastAPI, config: Settings) -> None:
    """Register all exception handlers on the FastAPI app."""

    @app.exception_handler(StoreDemoError)
    async def handle_app_error(request: Request, exc: StoreDemoError):
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "API Error [%s] %s %s: %s",
            exc.error_code, request.method, request.url.path, exc.message,
        )
        return build_error_response(
            exc.status_code, exc.error_code, exc.message, exc.details,
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
        message = "Not found" if exc.status_code == 404 else str(exc.detail)
        return build_error_response(exc.status_code, code, message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return build_error_response(
            422, "VALIDATION_ERROR", "Invalid request",
            {"errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(ValueError)
    async def handle_value_error(request: Request, exc: ValueError):
        logger.warning("ValueError: %s", exc)
        return build_error_response(422, "VALIDATION_ERROR", str(exc))

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.critical(
            "Unhandled exception: %s\n%s",
            exc, traceback.format_exc(),
        )
        message = str(exc) if config.DEBUG else "Internal server error"
        return build_error_response(500, "INTERNAL_ERROR", message)
