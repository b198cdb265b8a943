"""
Monitoring endpoints.

Provides liveness and readiness probes.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from docoh import __version__
from docoh.dependencies import get_document_service
from docoh.services.document_service import DocumentService

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    version: str = __version__


class ReadinessResponse(BaseModel):
    """Readiness check response with component status."""
    status: str
    blob_store: str
    metadata_table: str
    event_queue: str
    timestamp: str


def _check(probe) -> str:
    try:
        probe()
    except Exception:
        return "unhealthy"
    return "healthy"


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the server is running.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/ready", response_model=ReadinessResponse)
def readiness_check(service: DocumentService = Depends(get_document_service)) -> ReadinessResponse:
    """Readiness check: bucket, table and queue reachability."""
    blob_status = _check(service.blob_store.ping)
    table_status = _check(service.table.ping)
    queue_status = _check(service.publisher.ping)

    statuses = (blob_status, table_status, queue_status)
    overall = "healthy" if all(s == "healthy" for s in statuses) else "degraded"

    return ReadinessResponse(
        status=overall,
        blob_store=blob_status,
        metadata_table=table_status,
        event_queue=queue_status,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
