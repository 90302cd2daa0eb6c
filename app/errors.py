"""
Application error taxonomy and FastAPI exception handlers

Every failure leaves the API as the same envelope:
    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}
No stack traces or internal identifiers are ever returned to the client.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map onto a stable code and HTTP status"""

    status_code = 500
    code = "INTERNAL_SERVER_ERROR"
    default_message = "Something went wrong"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        self.message = message or self.default_message
        self.details = details
        self.headers = headers
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class AuthenticationError(AppError):
    status_code = 401
    code = "AUTHENTICATION_ERROR"
    default_message = "Authentication failed"


class UnauthorizedError(AppError):
    """Caller is authenticated but does not own the resource"""

    status_code = 403
    code = "AUTHORIZATION_ERROR"
    default_message = "Access denied"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT_ERROR"
    default_message = "Conflict with existing data"


class LockedError(AppError):
    status_code = 400
    code = "EVENT_LOCKED"
    default_message = "Event is locked by a pending swap"


class RateLimitError(AppError):
    status_code = 429
    code = "RATE_LIMIT_ERROR"
    default_message = "Too many requests"


class TransactionFailure(AppError):
    status_code = 500
    code = "TRANSACTION_FAILED"
    default_message = "The operation could not be completed"


def error_body(code: str, message: str, details: Optional[Any] = None) -> dict:
    body = {"success": False, "error": {"code": code, "message": message}}
    if details is not None:
        body["error"]["details"] = details
    return body


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} - {exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} - {exc.code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, exc.details),
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render pydantic validation failures as 400 with per-field details"""
    details = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details[".".join(loc) or "request"] = error.get("msg", "Invalid value")

    logger.warning(f"Validation error for {request.url.path}: {details}")
    return JSONResponse(status_code=400, content=error_body("VALIDATION_ERROR", "Validation failed", details))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        code, message = "NOT_FOUND", f"Route {request.url.path} not found"
    else:
        code, message = "HTTP_ERROR", str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content=error_body("INTERNAL_SERVER_ERROR", "Something went wrong"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
