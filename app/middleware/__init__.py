"""
Middleware modules for the shop API.

Correlation ID tracking: every request carries an X-Request-ID that is
echoed back and injected into log records.
"""

from .correlation import CorrelationIdMiddleware, CorrelationLogFilter, correlation_id_ctx, request_id_ctx

__all__ = [
    "CorrelationIdMiddleware",
    "CorrelationLogFilter",
    "correlation_id_ctx",
    "request_id_ctx",
]
