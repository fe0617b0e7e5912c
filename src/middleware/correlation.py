"""Request Correlation ID Middleware.

Every request is tagged with a correlation ID so that log lines written
while serving it (authorization denials, cache warnings, store errors)
can be grouped together. The ID is:
- Taken from the X-Correlation-ID (or X-Request-ID) request header
- Generated when the caller did not send one
- Included in every log message through CorrelationIdFilter
- Echoed back in the response headers

Usage:
    app.add_middleware(CorrelationIdMiddleware)
    configure_correlation_logging(level="INFO")
"""

from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar, Token
from typing import Any, Callable, Optional, Union

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)


_correlation_id_ctx: ContextVar[Optional[str]] = ContextVar(
    "correlation_id",
    default=None,
)

# Header names
CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

DEFAULT_LOG_FORMAT = (
    "%(asctime)s [%(correlation_id)s] %(levelname)s "
    "%(name)s: %(message)s"
)


def get_correlation_id() -> Optional[str]:
    """Get the correlation ID of the current context, or None."""
    return _correlation_id_ctx.get()


def set_correlation_id(correlation_id: str) -> Token[Optional[str]]:
    """Set the correlation ID for the current context.

    Returns:
        Token that can be used to reset the context.
    """
    return _correlation_id_ctx.set(correlation_id)


def reset_correlation_id(token: Token[Optional[str]]) -> None:
    _correlation_id_ctx.reset(token)


class correlation_id_context:
    """Context manager for code running outside a request (scripts, jobs).

    Usage:
        with correlation_id_context("seed-school-1"):
            await bootstrap_school_roles(service, "school-1")
    """

    def __init__(self, correlation_id: Optional[str] = None):
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self._token: Optional[Token[Optional[str]]] = None

    def __enter__(self) -> str:
        self._token = set_correlation_id(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            reset_correlation_id(self._token)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Middleware to handle correlation IDs for request tracing."""

    def __init__(
        self,
        app,
        header_name: str = CORRELATION_ID_HEADER,
        generator: Optional[Callable[[], str]] = None,
    ):
        """Initialize middleware.

        Args:
            app: ASGI application.
            header_name: Header name for correlation ID.
            generator: Optional custom ID generator function.
        """
        super().__init__(app)
        self.header_name = header_name
        self.generator = generator or (lambda: str(uuid.uuid4()))

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        correlation_id = (
            request.headers.get(self.header_name)
            or request.headers.get(REQUEST_ID_HEADER)
            or self.generator()
        )

        token = set_correlation_id(correlation_id)

        try:
            request.state.correlation_id = correlation_id
            request.state.request_id = correlation_id

            response = await call_next(request)

            response.headers[self.header_name] = correlation_id
            response.headers[REQUEST_ID_HEADER] = correlation_id

            return response

        finally:
            reset_correlation_id(token)


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds correlation_id to log records ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        return True


def configure_correlation_logging(
    log_format: Optional[str] = None,
    level: Union[int, str] = logging.INFO,
) -> None:
    """Configure root logging with correlation ID support.

    Safe to call more than once: the handler is installed a single time and
    later calls only adjust the level.

    Args:
        log_format: Custom log format (must include %(correlation_id)s).
        level: Logging level, as a number or a name such as "DEBUG".
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers:
        if any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
            handler.setLevel(level)
            return

    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(logging.Formatter(log_format or DEFAULT_LOG_FORMAT))
    handler.setLevel(level)
    root_logger.addHandler(handler)
