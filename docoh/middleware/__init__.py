"""
Middleware module initialization.
"""
from docoh.middleware.logging import (
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
    configure_logging,
    get_correlation_id,
    redact_sensitive_data,
)
from docoh.middleware.rate_limit import (
    limiter,
    rate_limit_exceeded_handler,
    upload_rate_limit,
)
from docoh.middleware.security import SecurityHeadersMiddleware, get_cors_origins

__all__ = [
    "CorrelationIdMiddleware",
    "RequestLoggingMiddleware",
    "configure_logging",
    "get_correlation_id",
    "redact_sensitive_data",
    "limiter",
    "rate_limit_exceeded_handler",
    "upload_rate_limit",
    "SecurityHeadersMiddleware",
    "get_cors_origins",
]
