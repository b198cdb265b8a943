"""
Pydantic schemas for document API endpoints.

Responses use camelCase field names on the wire.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from docoh.models.document import Document, DocumentStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadResponse(CamelModel):
    """Response model for document upload."""

    success: bool = True
    message: str = "Document uploaded successfully"
    document_id: str = Field(..., description="Generated document identifier")
    file_name: str = Field(..., description="Original filename")
    status: DocumentStatus = Field(..., description="Processing status")
    uploaded_at: datetime = Field(..., description="Upload timestamp")

    @classmethod
    def from_document(cls, document: Document) -> "UploadResponse":
        return cls(
            document_id=document.document_id,
            file_name=document.file_name,
            status=document.status,
            uploaded_at=document.uploaded_at,
        )


class DeleteResponse(CamelModel):
    """Response model for document deletion."""

    success: bool = True
    message: str = "Document deleted successfully"
    document_id: str


class DocumentStatusResponse(CamelModel):
    """Response model for document status query."""

    document_id: str
    file_name: str
    status: DocumentStatus
    uploaded_at: datetime
    processed_at: Optional[datetime] = None
    processing_notes: Optional[str] = None

    @classmethod
    def from_document(cls, document: Document) -> "DocumentStatusResponse":
        return cls(
            document_id=document.document_id,
            file_name=document.file_name,
            status=document.status,
            uploaded_at=document.uploaded_at,
            processed_at=document.processed_at,
            processing_notes=document.processing_notes,
        )


class StatsResponse(CamelModel):
    """Document counts per status plus queue depth."""

    total_documents: int
    uploaded_count: int
    processing_count: int
    completed_count: int
    failed_count: int
    queue_message_count: int


class ServiceHealthResponse(BaseModel):
    """Response model for the document service health check."""

    status: str
    timestamp: str
    service: str
    statistics: Optional[StatsResponse] = None
    error: Optional[str] = None


class ErrorResponse(BaseModel):
    """Response model for API errors."""

    error: bool = Field(True, description="Always true")
    error_code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
