"""
Unified API Error Response System.

Every failed request returns the same JSON envelope:

    {
        "success": false,
        "error": true,
        "code": "AUTH_INSUFFICIENT_PERMISSIONS",
        "message": "Insufficient permissions",
        "status_code": 403,
        "timestamp": "2026-01-29T12:00:00Z",
        "request_id": "550e8400-e29b-41d4-a716-446655440000",
        "path": "/role-permissions",
        "details": null,
        "field_errors": null
    }

Usage:
    from security.api_errors import BadRequestError, ForbiddenError

    raise BadRequestError("Invalid role for this school")
    raise ForbiddenError()
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from middleware.correlation import get_correlation_id

logger = logging.getLogger(__name__)


# =============================================================================
# ERROR CODES
# =============================================================================


class ErrorCode(str, Enum):
    """
    Standardized error codes for API responses.

    Categories:
    - AUTH_*: Authentication/Authorization errors (401, 403)
    - VALIDATION_*: Input validation errors (400)
    - RESOURCE_*: Resource-related errors (404, 409)
    - SERVER_*: Server-side errors (500, 503)
    """

    # Authentication & Authorization (401, 403)
    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_INVALID_TOKEN = "AUTH_INVALID_TOKEN"
    AUTH_INSUFFICIENT_PERMISSIONS = "AUTH_INSUFFICIENT_PERMISSIONS"

    # Validation Errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Resource Errors (404, 405, 409)
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_ALREADY_EXISTS = "RESOURCE_ALREADY_EXISTS"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"

    # Server Errors (500, 503)
    SERVER_INTERNAL_ERROR = "SERVER_INTERNAL_ERROR"
    SERVER_DATABASE_ERROR = "SERVER_DATABASE_ERROR"
    SERVER_UNAVAILABLE = "SERVER_UNAVAILABLE"


# =============================================================================
# ERROR CODE TO HTTP STATUS MAPPING
# =============================================================================

ERROR_CODE_STATUS_MAP: Dict[ErrorCode, int] = {
    ErrorCode.AUTH_REQUIRED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.AUTH_INVALID_TOKEN: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.AUTH_INSUFFICIENT_PERMISSIONS: status.HTTP_403_FORBIDDEN,
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.RESOURCE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.RESOURCE_ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorCode.METHOD_NOT_ALLOWED: status.HTTP_405_METHOD_NOT_ALLOWED,
    ErrorCode.SERVER_INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.SERVER_DATABASE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.SERVER_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}

# Used for framework-raised HTTP errors
STATUS_ERROR_CODE_MAP: Dict[int, ErrorCode] = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.AUTH_REQUIRED,
    403: ErrorCode.AUTH_INSUFFICIENT_PERMISSIONS,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
    409: ErrorCode.RESOURCE_ALREADY_EXISTS,
    503: ErrorCode.SERVER_UNAVAILABLE,
}


# =============================================================================
# ERROR RESPONSE MODELS
# =============================================================================


class FieldError(BaseModel):
    """Individual field validation error."""
    field: str = Field(..., description="Field name that caused the error")
    message: str = Field(..., description="Error message for this field")
    code: str = Field(default="invalid", description="Error code for this field")


class ErrorResponse(BaseModel):
    """
    Standardized API error response.

    All API errors return this format for consistent client handling.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": False,
                "error": True,
                "code": "VALIDATION_ERROR",
                "message": "Invalid permissions: view_everything",
                "status_code": 400,
                "timestamp": "2026-01-29T12:00:00Z",
                "request_id": "550e8400-e29b-41d4-a716-446655440000",
                "path": "/role-permissions/TEACHER/permissions",
                "details": None,
                "field_errors": None,
            }
        }
    )

    success: bool = Field(default=False, description="Always false for errors")
    error: bool = Field(default=True, description="Always true for errors")
    code: str = Field(..., description="Error code from ErrorCode enum")
    message: str = Field(..., description="Human-readable error message")
    status_code: int = Field(..., description="HTTP status code")
    timestamp: str = Field(..., description="ISO 8601 timestamp")
    request_id: str = Field(..., description="Unique request identifier for tracking")
    path: Optional[str] = Field(None, description="Request path that caused the error")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")
    field_errors: Optional[List[FieldError]] = Field(None, description="Field-specific validation errors")


def _timestamp() -> str:
    return datetime.utcnow().isoformat() + "Z"


# =============================================================================
# API ERROR EXCEPTIONS
# =============================================================================


class APIError(Exception):
    """
    Custom exception for API errors.

    Raise this exception anywhere in request handling to return a
    standardized error response.

    Usage:
        raise APIError(
            code=ErrorCode.RESOURCE_NOT_FOUND,
            message="School not found",
        )
    """

    def __init__(
        self,
        code: Union[ErrorCode, str],
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        field_errors: Optional[List[Dict[str, str]]] = None,
        log_error: bool = True,
    ):
        self.code = code if isinstance(code, ErrorCode) else ErrorCode(code)
        self.message = message
        self.status_code = status_code or ERROR_CODE_STATUS_MAP.get(
            self.code, status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        self.details = details
        self.field_errors = field_errors
        self.log_error = log_error
        super().__init__(message)

    def to_response(self, request_id: str, path: Optional[str] = None) -> ErrorResponse:
        """Convert to ErrorResponse model."""
        field_error_models = None
        if self.field_errors:
            field_error_models = [
                FieldError(
                    field=fe.get("field", "unknown"),
                    message=fe.get("message", "Invalid value"),
                    code=fe.get("code", "invalid"),
                )
                for fe in self.field_errors
            ]

        return ErrorResponse(
            code=self.code.value,
            message=self.message,
            status_code=self.status_code,
            timestamp=_timestamp(),
            request_id=request_id,
            path=path,
            details=self.details,
            field_errors=field_error_models,
        )


class UnauthorizedError(APIError):
    """401: missing or invalid credentials, or no staff record."""

    def __init__(self, message: str = "Authentication required", **kwargs):
        kwargs.setdefault("code", ErrorCode.AUTH_REQUIRED)
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED, **kwargs)


class ForbiddenError(APIError):
    """403: authenticated but not allowed."""

    def __init__(self, message: str = "Insufficient permissions", **kwargs):
        kwargs.setdefault("code", ErrorCode.AUTH_INSUFFICIENT_PERMISSIONS)
        super().__init__(message=message, status_code=status.HTTP_403_FORBIDDEN, **kwargs)


class BadRequestError(APIError):
    """400: the request is well-formed but its content is not acceptable."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("code", ErrorCode.VALIDATION_ERROR)
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, **kwargs)


class NotFoundError(APIError):
    """404: the addressed resource does not exist."""

    def __init__(self, message: str = "Resource not found", **kwargs):
        kwargs.setdefault("code", ErrorCode.RESOURCE_NOT_FOUND)
        super().__init__(message=message, status_code=status.HTTP_404_NOT_FOUND, **kwargs)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def get_request_id(request: Request) -> str:
    """Get or generate request ID for tracking."""
    request_id = request.headers.get("X-Request-ID")
    if not request_id:
        request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = get_correlation_id()
    if not request_id:
        request_id = str(uuid.uuid4())
    return request_id


def _json_error(response: ErrorResponse, request_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=response.status_code,
        content=response.model_dump(),
        headers={"X-Request-ID": request_id},
    )


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI app.

    Call this in your app initialization:
        from security.api_errors import register_exception_handlers
        register_exception_handlers(app)
    """

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
        """Handle custom APIError exceptions."""
        request_id = get_request_id(request)

        if exc.log_error:
            log_level = logging.INFO if exc.status_code < 500 else logging.ERROR
            logger.log(
                log_level,
                f"[{request_id}] APIError: {exc.code.value} - {exc.message}",
                extra={
                    "request_id": request_id,
                    "error_code": exc.code.value,
                    "status_code": exc.status_code,
                    "path": request.url.path,
                    "method": request.method,
                },
            )

        return _json_error(exc.to_response(request_id, request.url.path), request_id)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle malformed request bodies and parameters (400)."""
        request_id = get_request_id(request)

        field_errors = []
        for error in exc.errors():
            field_path = ".".join(str(loc) for loc in error["loc"] if loc != "body")
            field_errors.append(FieldError(
                field=field_path or "body",
                message=error["msg"],
                code=error["type"],
            ))

        logger.warning(
            f"[{request_id}] Validation error: {len(field_errors)} field(s)",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
            },
        )

        response = ErrorResponse(
            code=ErrorCode.VALIDATION_ERROR.value,
            message="Request validation failed",
            status_code=status.HTTP_400_BAD_REQUEST,
            timestamp=_timestamp(),
            request_id=request_id,
            path=request.url.path,
            field_errors=field_errors,
        )
        return _json_error(response, request_id)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle standard HTTP exceptions."""
        request_id = get_request_id(request)
        error_code = STATUS_ERROR_CODE_MAP.get(exc.status_code, ErrorCode.SERVER_INTERNAL_ERROR)

        logger.warning(
            f"[{request_id}] HTTP {exc.status_code}: {exc.detail}",
            extra={
                "request_id": request_id,
                "status_code": exc.status_code,
                "path": request.url.path,
                "method": request.method,
            },
        )

        response = ErrorResponse(
            code=error_code.value,
            message=str(exc.detail) if exc.detail else "An error occurred",
            status_code=exc.status_code,
            timestamp=_timestamp(),
            request_id=request_id,
            path=request.url.path,
        )
        return _json_error(response, request_id)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global catch-all exception handler.

        SECURITY: Never expose internal error details to clients.
        """
        request_id = get_request_id(request)

        logger.error(
            f"[{request_id}] Unhandled exception: {type(exc).__name__}: {str(exc)}",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__,
            },
            exc_info=True,
        )

        response = ErrorResponse(
            code=ErrorCode.SERVER_INTERNAL_ERROR.value,
            message="An unexpected error occurred. Please try again later.",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            timestamp=_timestamp(),
            request_id=request_id,
            path=request.url.path,
            details={"support": f"Reference ID: {request_id}"},
        )
        return _json_error(response, request_id)
