"""
Lifecycle event messages published to the document event queue.
"""
import enum
from datetime import datetime
from typing import Any, Dict, Optional

from docoh.models.document import Document, utcnow


class EventType(str, enum.Enum):
    """Event types carried in the ``eventType`` field."""

    DOCUMENT_UPLOADED = "DOCUMENT_UPLOADED"
    PROCESSING_STARTED = "PROCESSING_STARTED"
    PROCESSING_COMPLETED = "PROCESSING_COMPLETED"
    PROCESSING_FAILED = "PROCESSING_FAILED"
    DOCUMENT_DELETED = "DOCUMENT_DELETED"


def build_document_event(
    event_type: EventType,
    document: Document,
    error_message: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Build the standard event body for a document snapshot."""
    body: Dict[str, Any] = {
        "eventType": event_type.value,
        "documentId": document.document_id,
        "fileName": document.file_name,
        "contentType": document.content_type,
        "fileSize": document.file_size,
        "s3Bucket": document.s3_bucket,
        "s3Key": document.s3_key,
        "status": document.status.value,
        "timestamp": (timestamp or utcnow()).isoformat(),
    }
    if document.processing_notes is not None:
        body["processingNotes"] = document.processing_notes
    if error_message is not None:
        body["errorMessage"] = error_message
    return body


def build_deleted_event(
    document_id: str,
    file_name: Optional[str],
    timestamp: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Deletion events carry identity only; the record no longer exists."""
    return {
        "eventType": EventType.DOCUMENT_DELETED.value,
        "documentId": document_id,
        "fileName": file_name,
        "timestamp": (timestamp or utcnow()).isoformat(),
    }


def build_failed_event_without_record(
    document_id: str,
    error_message: str,
    timestamp: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Failure event for a document whose record vanished mid-processing."""
    return {
        "eventType": EventType.PROCESSING_FAILED.value,
        "documentId": document_id,
        "status": "FAILED",
        "timestamp": (timestamp or utcnow()).isoformat(),
        "errorMessage": error_message,
    }
