"""
Pytest configuration and fixtures.

Provides in-memory stand-ins for the blob store, metadata table and event
queue so the document service can be exercised without AWS.
"""
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

from docoh.dependencies import get_document_service
from docoh.exceptions import DocumentNotFoundError, InvalidTransitionError
from docoh.main import app
from docoh.middleware.rate_limit import limiter
from docoh.models.document import Document, DocumentStatus
from docoh.models.events import (
    EventType,
    build_deleted_event,
    build_document_event,
    build_failed_event_without_record,
)
from docoh.services.blob_store import S3BlobStore
from docoh.services.dispatcher import ProcessingDispatcher, ProcessingHandle
from docoh.services.document_service import DocumentService
from docoh.services.ports import BlobStore, EventPublisher, MetadataTable


class InMemoryBlobStore(BlobStore):
    def __init__(self, bucket_name: str = "test-bucket"):
        self._bucket = bucket_name
        self.objects: Dict[str, bytes] = {}

    @property
    def bucket_name(self) -> str:
        return self._bucket

    def put(self, file_name: str, content_type: str, content: bytes) -> str:
        key = S3BlobStore.build_key(file_name)
        self.objects[key] = content
        return key

    def get(self, key: str) -> Optional[bytes]:
        return self.objects.get(key)

    def delete(self, key: str) -> None:
        self.objects.pop(key, None)


class InMemoryMetadataTable(MetadataTable):
    def __init__(self):
        self.items: Dict[str, Document] = {}
        self.writes = 0
        self._lock = threading.Lock()

    def put(self, document: Document) -> Document:
        with self._lock:
            self.items[document.document_id] = document
            self.writes += 1
        return document

    def get(self, document_id: str) -> Optional[Document]:
        return self.items.get(document_id)

    def scan(self) -> List[Document]:
        return list(self.items.values())

    def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        notes: Optional[str] = None,
        processed_at: Optional[datetime] = None,
        expected_status: Optional[DocumentStatus] = None,
    ) -> Document:
        with self._lock:
            current = self.items.get(document_id)
            if current is None:
                raise DocumentNotFoundError(document_id)
            if expected_status is not None and current.status != expected_status:
                raise InvalidTransitionError(current.status.value, status.value)
            changes: Dict[str, Any] = {"status": status}
            if notes:
                changes["processing_notes"] = notes
            if processed_at is not None:
                changes["processed_at"] = processed_at
            updated = current.model_copy(update=changes)
            self.items[document_id] = updated
            self.writes += 1
        return updated

    def delete(self, document_id: str) -> None:
        with self._lock:
            self.items.pop(document_id, None)


class RecordingEventPublisher(EventPublisher):
    """Keeps published event bodies in memory."""

    def __init__(self, queue_depth: int = 0):
        self.events: List[Dict[str, Any]] = []
        self.queue_depth = queue_depth

    def publish(self, event_type: EventType, document: Document, error_message: Optional[str] = None) -> None:
        self.events.append(build_document_event(event_type, document, error_message))

    def publish_deleted(self, document_id: str, file_name: Optional[str]) -> None:
        self.events.append(build_deleted_event(document_id, file_name))

    def publish_failure_without_record(self, document_id: str, error_message: str) -> None:
        self.events.append(build_failed_event_without_record(document_id, error_message))

    def approximate_message_count(self) -> int:
        return self.queue_depth

    def event_types(self, document_id: Optional[str] = None) -> List[str]:
        return [
            e["eventType"] for e in self.events
            if document_id is None or e["documentId"] == document_id
        ]


class DeferredHandle(ProcessingHandle):
    def __init__(self, fn: Callable[[str], Any], document_id: str):
        self._fn = fn
        self._document_id = document_id
        self._ran = False
        self._result = None

    def run(self) -> Any:
        if not self._ran:
            self._ran = True
            self._result = self._fn(self._document_id)
        return self._result

    def result(self, timeout: Optional[float] = None) -> Any:
        return self.run()

    def done(self) -> bool:
        return self._ran


class DeferredDispatcher(ProcessingDispatcher):
    """Holds submitted steps until a test runs them."""

    def __init__(self):
        self.handles: Dict[str, DeferredHandle] = {}

    def submit(self, fn: Callable[[str], Any], document_id: str) -> ProcessingHandle:
        handle = DeferredHandle(fn, document_id)
        self.handles[document_id] = handle
        return handle

    def run_all(self) -> None:
        for handle in list(self.handles.values()):
            handle.run()


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def metadata_table() -> InMemoryMetadataTable:
    return InMemoryMetadataTable()


@pytest.fixture
def publisher() -> RecordingEventPublisher:
    return RecordingEventPublisher(queue_depth=3)


@pytest.fixture
def dispatcher() -> DeferredDispatcher:
    return DeferredDispatcher()


@pytest.fixture
def sleeps() -> List[float]:
    """Records simulated processing delays instead of sleeping."""
    return []


@pytest.fixture
def document_service(
    blob_store: InMemoryBlobStore,
    metadata_table: InMemoryMetadataTable,
    publisher: RecordingEventPublisher,
    dispatcher: DeferredDispatcher,
    sleeps: List[float],
) -> DocumentService:
    """Service wired to in-memory fakes; the injected failure never fires."""
    return DocumentService(
        blob_store=blob_store,
        table=metadata_table,
        publisher=publisher,
        dispatcher=dispatcher,
        sleep=sleeps.append,
        random_source=lambda: 0.99,
    )


@pytest.fixture
def client(document_service: DocumentService) -> Generator[TestClient, None, None]:
    """Create a test client with the document service overridden."""
    app.dependency_overrides[get_document_service] = lambda: document_service
    limiter.reset()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
