"""
Logging middleware and structlog configuration.

Provides correlation ID tracking, request/response logging, and redaction of
sensitive fields.
"""
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Context variable for correlation ID (thread-safe)
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

logger = structlog.get_logger(__name__)

# Sensitive fields to redact from logs
SENSITIVE_FIELDS = {
    "password", "token", "authorization", "api_key", "secret",
    "aws_access_key_id", "aws_secret_access_key", "aws_session_token",
}


def get_correlation_id() -> str:
    """Get the current request's correlation ID."""
    return correlation_id.get()


def redact_sensitive_data(data: dict, depth: int = 0) -> dict:
    """
    Recursively redact sensitive fields from a dictionary.

    Args:
        data: Dictionary to redact
        depth: Current recursion depth (to prevent infinite loops)

    Returns:
        Dictionary with sensitive values replaced with "[REDACTED]"
    """
    if depth > 5 or not isinstance(data, dict):
        return data

    redacted = {}
    for key, value in data.items():
        key_lower = str(key).lower()
        if any(sensitive in key_lower for sensitive in SENSITIVE_FIELDS):
            redacted[key] = "[REDACTED]"
        elif isinstance(value, dict):
            redacted[key] = redact_sensitive_data(value, depth + 1)
        elif isinstance(value, list):
            redacted[key] = [
                redact_sensitive_data(item, depth + 1) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            redacted[key] = value

    return redacted


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Middleware that adds correlation ID to each request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        correlation_id.set(request_id)

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware that logs all requests with timing information."""

    # Paths to skip detailed logging
    SKIP_PATHS = {"/health", "/ready", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        request_info = {
            "method": request.method,
            "path": request.url.path,
            "query": str(request.query_params) if request.query_params else None,
            "client_ip": request.client.host if request.client else None,
            "user_agent": request.headers.get("User-Agent", "")[:100],
        }

        logger.info("request_started", **request_info)

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "request_failed",
                **request_info,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round(duration_ms, 2),
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "request_completed",
            **request_info,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )
        if duration_ms > 1000:
            logger.warning("slow_request", **request_info, duration_ms=round(duration_ms, 2))

        return response


def add_correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict
) -> dict:
    """Structlog processor that adds correlation ID to all log entries."""
    event_dict["correlation_id"] = get_correlation_id()
    return event_dict


def redact_sensitive_processor(
    logger: Any, method_name: str, event_dict: dict
) -> dict:
    """Structlog processor that redacts sensitive data from log entries."""
    return redact_sensitive_data(event_dict)


def configure_logging(log_level: str = "INFO") -> None:
    """Configure stdlib logging and structlog with JSON output."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            add_correlation_id_processor,
            redact_sensitive_processor,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
