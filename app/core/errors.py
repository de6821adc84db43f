"""
Error types, response envelopes and the shared exception handlers
"""
from datetime import datetime, timezone
from typing import Any, List, Optional
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

# Error number raised by the stored procedures for business rule violations
BUSINESS_RULE_ERROR_NUMBER = 51000


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def error_response(message: str, code: str = "ERROR", details: Optional[Any] = None) -> dict:
    """Build the error envelope returned by every failing endpoint"""
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {
        "success": False,
        "error": error,
        "timestamp": utc_timestamp(),
    }


class DatabaseError(Exception):
    """Error raised by a stored procedure call, carrying the server error number"""

    def __init__(self, number: Optional[int], message: str):
        super().__init__(message)
        self.number = number
        self.message = message

    @property
    def is_business_rule(self) -> bool:
        return self.number == BUSINESS_RULE_ERROR_NUMBER


class AppError(Exception):
    """Base class for errors that map directly to an HTTP response"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_SERVER_ERROR"
    message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        self.details = details


class BusinessRuleError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BUSINESS_RULE_ERROR"
    message = "Business rule violation"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    message = "Not authenticated"


class PermissionDeniedError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    message = "Insufficient permissions"


class GeneralError(AppError):
    """Generic server error, never exposes the underlying cause"""


def validation_details(errors: List[dict]) -> List[dict]:
    """Flatten pydantic error dicts into field-level details"""
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({
            "field": ".".join(loc),
            "message": err.get("msg", ""),
            "type": err.get("type", ""),
        })
    return details


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.message, exc.code, exc.details),
        headers=headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_response("Validation failed", "VALIDATION_ERROR", validation_details(exc.errors())),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(f"Route {request.method} {request.url.path} not found", "NOT_FOUND"),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(str(exc.detail), "HTTP_ERROR"),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(GeneralError.message, GeneralError.code),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
