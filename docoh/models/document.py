"""
Document model for uploaded file metadata.

Represents a document record as stored in the metadata table.
"""
import enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DocumentStatus(str, enum.Enum):
    """Document processing status."""

    UPLOADED = "UPLOADED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(BaseModel):
    """
    Metadata for an uploaded document.

    Attributes:
        document_id: Unique identifier (UUID string).
        file_name: Original filename of the upload.
        content_type: MIME type reported by the client.
        file_size: Size of the content in bytes.
        s3_bucket: Bucket holding the content.
        s3_key: Object key of the content.
        status: Current processing status.
        uploaded_at: Timestamp when the document was uploaded.
        processed_at: Timestamp when processing reached a terminal status.
        processing_notes: Free-text note set by the processing step.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    document_id: str
    file_name: str
    content_type: str
    file_size: int
    s3_bucket: str
    s3_key: str
    status: DocumentStatus = DocumentStatus.UPLOADED
    uploaded_at: datetime = Field(default_factory=utcnow)
    processed_at: Optional[datetime] = None
    processing_notes: Optional[str] = None

    def to_item(self) -> Dict[str, Any]:
        """Serialize to a metadata table item (camelCase keys, ISO timestamps)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Document":
        """Build from a metadata table item; numbers may arrive as Decimal."""
        data = dict(item)
        if "fileSize" in data:
            data["fileSize"] = int(data["fileSize"])
        return cls.model_validate(data)

    def __repr__(self) -> str:
        return f"<Document(id={self.document_id}, file_name='{self.file_name}', status={self.status.value})>"
