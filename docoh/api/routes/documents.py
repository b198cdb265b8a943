"""
Document API routes.

Provides endpoints for upload, retrieval, download, deletion and statistics.
Errors raised by the service are rendered by the application's DocOhError
handler.
"""
from datetime import datetime, timezone
from typing import List, Optional, Union

import structlog
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response
from starlette.datastructures import UploadFile as StarletteUploadFile

from docoh.config import get_settings
from docoh.dependencies import get_document_service
from docoh.middleware.rate_limit import upload_rate_limit
from docoh.models.document import Document
from docoh.schemas.document import (
    DeleteResponse,
    DocumentStatusResponse,
    ErrorResponse,
    ServiceHealthResponse,
    StatsResponse,
    UploadResponse,
)
from docoh.services.document_service import DocumentService, ProcessingStats

logger = structlog.get_logger(__name__)

router = APIRouter()

NOT_FOUND = {404: {"model": ErrorResponse, "description": "Document not found"}}


def _stats_response(stats: ProcessingStats) -> StatsResponse:
    return StatsResponse(
        total_documents=stats.total_documents,
        uploaded_count=stats.uploaded_count,
        processing_count=stats.processing_count,
        completed_count=stats.completed_count,
        failed_count=stats.failed_count,
        queue_message_count=stats.queue_message_count,
    )


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid file"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Storage error"},
    },
    summary="Upload a document",
    description="Store a document and start its (simulated) processing in the background.",
)
@upload_rate_limit()
async def upload_document(
    request: Request,
    file: Union[UploadFile, str, None] = File(None, description="File to upload"),
    description: Optional[str] = Form(None),
    service: DocumentService = Depends(get_document_service),
) -> UploadResponse:
    # A part without a filename arrives as a plain form string
    if not isinstance(file, StarletteUploadFile):
        content = file.encode() if isinstance(file, str) else b""
        logger.info("upload_request", file_name=None, size=len(content), has_description=description is not None)
        document = await run_in_threadpool(service.upload, content, None, None)
        return UploadResponse.from_document(document)

    if file.filename and file.filename.strip():
        # Check file size before reading the body
        file.file.seek(0, 2)
        file_size = file.file.tell()
        file.file.seek(0)
        service.check_upload_size(file_size)

    content = await file.read()
    logger.info(
        "upload_request",
        file_name=file.filename,
        size=len(content),
        has_description=description is not None,
    )

    document = await run_in_threadpool(service.upload, content, file.filename, file.content_type)
    return UploadResponse.from_document(document)


@router.get("", response_model=List[Document], summary="List all documents")
def list_documents(service: DocumentService = Depends(get_document_service)) -> List[Document]:
    return service.list()


@router.get("/stats", response_model=StatsResponse, summary="Processing statistics")
def get_processing_stats(service: DocumentService = Depends(get_document_service)) -> StatsResponse:
    return _stats_response(service.stats())


@router.get(
    "/health",
    response_model=ServiceHealthResponse,
    responses={500: {"model": ServiceHealthResponse, "description": "A backing service is failing"}},
    summary="Document service health",
)
def document_service_health(service: DocumentService = Depends(get_document_service)):
    """Exercise the table and the queue by computing statistics."""
    settings = get_settings()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        stats = service.stats()
    except Exception as e:
        logger.error("health_check_failed", error=str(e), error_type=type(e).__name__)
        body = ServiceHealthResponse(
            status="unhealthy",
            timestamp=timestamp,
            service=settings.service_name,
            error=str(e),
        )
        return JSONResponse(status_code=500, content=body.model_dump(by_alias=True, exclude_none=True))

    return ServiceHealthResponse(
        status="healthy",
        timestamp=timestamp,
        service=settings.service_name,
        statistics=_stats_response(stats),
    )


@router.get("/{document_id}", response_model=Document, responses=NOT_FOUND, summary="Get document metadata")
def get_document(document_id: str, service: DocumentService = Depends(get_document_service)) -> Document:
    return service.get(document_id)


@router.get(
    "/{document_id}/status",
    response_model=DocumentStatusResponse,
    responses=NOT_FOUND,
    summary="Get document processing status",
)
def get_document_status(
    document_id: str,
    service: DocumentService = Depends(get_document_service),
) -> DocumentStatusResponse:
    return DocumentStatusResponse.from_document(service.get(document_id))


@router.get(
    "/{document_id}/download",
    response_class=Response,
    responses=NOT_FOUND,
    summary="Download document content",
)
def download_document(document_id: str, service: DocumentService = Depends(get_document_service)) -> Response:
    document = service.get(document_id)
    content = service.download(document_id)
    return Response(
        content=content,
        media_type=document.content_type,
        headers={"Content-Disposition": f'attachment; filename="{document.file_name}"'},
    )


@router.delete("/{document_id}", response_model=DeleteResponse, responses=NOT_FOUND, summary="Delete a document")
def delete_document(document_id: str, service: DocumentService = Depends(get_document_service)) -> DeleteResponse:
    service.delete(document_id)
    return DeleteResponse(document_id=document_id)
