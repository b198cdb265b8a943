"""
Rate limiting for the upload endpoint using slowapi.
"""
import os

import structlog
from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

logger = structlog.get_logger(__name__)


def get_client_identifier(request: Request) -> str:
    """Client IP, honouring X-Forwarded-For behind a load balancer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


# In-memory storage unless RATE_LIMIT_STORAGE_URI points at Redis
RATE_LIMIT_STORAGE_URI = os.getenv("RATE_LIMIT_STORAGE_URI")
if RATE_LIMIT_STORAGE_URI:
    limiter = Limiter(key_func=get_client_identifier, storage_uri=RATE_LIMIT_STORAGE_URI)
else:
    limiter = Limiter(key_func=get_client_identifier)

RATE_LIMITS = {
    "upload": os.getenv("UPLOAD_RATE_LIMIT", "60/minute"),
}


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Return a JSON 429 in the same shape as other API errors."""
    logger.warning(
        "rate_limit_exceeded",
        client=get_client_identifier(request),
        path=request.url.path,
        limit=str(exc.detail),
    )

    retry_after = 60
    return JSONResponse(
        status_code=429,
        content={
            "error": True,
            "error_code": "DOC-429",
            "message": "Too many requests. Please slow down.",
            "details": {
                "limit": str(exc.detail),
                "retry_after_seconds": retry_after,
            },
        },
        headers={"Retry-After": str(retry_after)},
    )


def upload_rate_limit():
    """Rate limit decorator for upload endpoints."""
    return limiter.limit(RATE_LIMITS["upload"])
