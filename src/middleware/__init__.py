"""Middleware components for the school permission service.

Provides:
- Request correlation ID tracking
- Logging context enrichment
"""

from .correlation import (
    CorrelationIdMiddleware,
    configure_correlation_logging,
    get_correlation_id,
    set_correlation_id,
    correlation_id_context,
)

__all__ = [
    "CorrelationIdMiddleware",
    "configure_correlation_logging",
    "get_correlation_id",
    "set_correlation_id",
    "correlation_id_context",
]
