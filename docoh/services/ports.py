"""
Capability interfaces for the external stores used by the document service.

The AWS-backed adapters implement these; tests substitute in-memory fakes.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from docoh.models.document import Document, DocumentStatus
from docoh.models.events import EventType


class BlobStore(ABC):
    """Byte content keyed by a generated object key."""

    @property
    @abstractmethod
    def bucket_name(self) -> str:
        pass

    @abstractmethod
    def put(self, file_name: str, content_type: str, content: bytes) -> str:
        """Store content and return the generated key."""
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return content, or None if the key does not exist."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    def ping(self) -> None:
        """Raise if the store is unreachable."""


class MetadataTable(ABC):
    """Document records keyed by document id."""

    @abstractmethod
    def put(self, document: Document) -> Document:
        pass

    @abstractmethod
    def get(self, document_id: str) -> Optional[Document]:
        """Return the record, or None if absent."""
        pass

    @abstractmethod
    def scan(self) -> List[Document]:
        """Return every record."""
        pass

    @abstractmethod
    def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        notes: Optional[str] = None,
        processed_at: Optional[datetime] = None,
        expected_status: Optional[DocumentStatus] = None,
    ) -> Document:
        """
        Update status fields of an existing record.

        When ``expected_status`` is given the write only applies if the stored
        status still equals it.

        Raises:
            DocumentNotFoundError: If the record does not exist.
            InvalidTransitionError: If the stored status differs from ``expected_status``.
        """
        pass

    @abstractmethod
    def delete(self, document_id: str) -> None:
        pass

    def ping(self) -> None:
        """Raise if the table is unreachable."""


class EventPublisher(ABC):
    """Lifecycle event sink."""

    @abstractmethod
    def publish(
        self,
        event_type: EventType,
        document: Document,
        error_message: Optional[str] = None,
    ) -> None:
        """Publish a document event. Never raises."""
        pass

    @abstractmethod
    def publish_deleted(self, document_id: str, file_name: Optional[str]) -> None:
        """Publish a deletion event. Never raises."""
        pass

    @abstractmethod
    def publish_failure_without_record(self, document_id: str, error_message: str) -> None:
        """Publish a failure event for a vanished record. Never raises."""
        pass

    @abstractmethod
    def approximate_message_count(self) -> int:
        """Approximate queue depth; 0 when unknown."""
        pass

    def receive(self, max_messages: int = 10, wait_time_seconds: int = 10) -> List[Dict[str, Any]]:
        return []

    def ping(self) -> None:
        """Raise if the queue is unreachable."""
