"""
FastAPI application entry point.

Configures the application with routes, middleware, and settings.
"""
import traceback

import sentry_sdk
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from slowapi.errors import RateLimitExceeded

from docoh import __version__
from docoh.api.routes import documents, monitoring
from docoh.config import get_settings
from docoh.dependencies import get_document_service
from docoh.exceptions import DocOhError
from docoh.middleware.logging import (
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
    configure_logging,
)
from docoh.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from docoh.middleware.security import SecurityHeadersMiddleware, get_cors_origins

settings = get_settings()


def _filter_sensitive_data(event: dict) -> dict:
    """Filter sensitive data from Sentry events before sending."""
    sensitive_keys = {"password", "token", "secret", "authorization", "api_key", "aws_"}

    def _redact(obj):
        if isinstance(obj, dict):
            return {
                k: "[REDACTED]" if any(s in k.lower() for s in sensitive_keys) else _redact(v)
                for k, v in obj.items()
            }
        elif isinstance(obj, list):
            return [_redact(item) for item in obj]
        return obj

    if "request" in event and "data" in event["request"]:
        event["request"]["data"] = _redact(event["request"]["data"])
    if "extra" in event:
        event["extra"] = _redact(event["extra"])

    return event


# Initialize Sentry for error tracking (must be done early)
if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=__version__,
        traces_sample_rate=0.1,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            LoggingIntegration(level=None, event_level="ERROR"),
        ],
        send_default_pii=False,
        before_send=lambda event, hint: _filter_sensitive_data(event),
    )

configure_logging(settings.log_level)

logger = structlog.get_logger(__name__)

app = FastAPI(
    title="DocOh API",
    description="""
## Document Upload and Processing API

Upload documents to object storage, track their metadata, and follow their
(simulated) processing lifecycle: UPLOADED, PROCESSING, then COMPLETED or FAILED.
Lifecycle events are published to a message queue.
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Documents", "description": "Document upload, retrieval and lifecycle"},
        {"name": "Monitoring", "description": "Health and readiness probes"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-ID", "Content-Disposition"],
)

app.add_middleware(SecurityHeadersMiddleware)

# Order matters: correlation ID first
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.include_router(documents.router, prefix="/api/documents", tags=["Documents"])
app.include_router(monitoring.router, tags=["Monitoring"])


@app.exception_handler(DocOhError)
async def docoh_exception_handler(request: Request, exc: DocOhError):
    """Handle all DocOh custom exceptions."""
    log = logger.warning if exc.http_status < 500 else logger.error
    log(
        "docoh_error",
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details,
        path=str(request.url.path),
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with consistent format."""
    sentry_sdk.capture_exception(exc)

    logger.error(
        "unhandled_error",
        error_type=type(exc).__name__,
        message=str(exc),
        path=str(request.url.path),
        traceback=traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "error_code": "DOC-999",
            "message": "An unexpected error occurred. Please try again.",
            "details": {"error_type": type(exc).__name__} if settings.debug else {},
        },
    )


@app.on_event("startup")
async def startup_event() -> None:
    """Initialize application on startup."""
    logger.info(
        "Starting DocOh API",
        debug=settings.debug,
        processing_backend=settings.processing_backend,
        bucket=settings.s3_bucket_name,
        table=settings.dynamodb_table_name,
    )

    if settings.sentry_dsn:
        logger.info("Sentry error tracking enabled", environment=settings.environment)
    else:
        logger.warning("Sentry error tracking not configured (SENTRY_DSN not set)")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """Stop the processing pool without waiting for in-flight work."""
    logger.info("Shutting down DocOh API")
    if get_document_service.cache_info().currsize:
        service = get_document_service()
        if service.dispatcher is not None:
            service.dispatcher.shutdown(wait=False)
