"""
Security module for the school permission service.

Provides the unified API error envelope and its exception handlers.
"""

from .api_errors import (
    APIError,
    BadRequestError,
    ErrorCode,
    ErrorResponse,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    register_exception_handlers,
)

__all__ = [
    "APIError",
    "BadRequestError",
    "ErrorCode",
    "ErrorResponse",
    "ForbiddenError",
    "NotFoundError",
    "UnauthorizedError",
    "register_exception_handlers",
]
