"""
Document lifecycle service.

Coordinates the blob store, the metadata table and the event publisher to
upload, read, delete and (simulate) process documents.
"""
import random
import threading
import time
import uuid
from collections import Counter, OrderedDict
from dataclasses import dataclass
from typing import Callable, List, Optional

import structlog

from docoh.exceptions import (
    DocumentNotFoundError,
    EmptyFileError,
    FileTooLargeError,
    InvalidFileTypeError,
    InvalidTransitionError,
    MissingFileNameError,
    SimulatedProcessingError,
)
from docoh.models.document import Document, DocumentStatus, utcnow
from docoh.models.events import EventType
from docoh.services.dispatcher import ProcessingDispatcher, ProcessingHandle
from docoh.services.lifecycle import LifecycleEvent, can_transition, transition
from docoh.services.ports import BlobStore, EventPublisher, MetadataTable

logger = structlog.get_logger(__name__)

DEFAULT_MAX_UPLOAD_SIZE = 10 * 1024 * 1024
DEFAULT_CONTENT_TYPE = "application/octet-stream"

ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
ALLOWED_CONTENT_TYPE_PREFIXES = ("text/", "image/")

# Extra simulated time per content family, in milliseconds
CONTENT_TYPE_BONUS_MS = {
    "image": 1000,  # OCR
    "pdf": 500,  # text extraction
    "text": 200,  # text analysis
}

# Upper bound on retained processing handles
MAX_TRACKED_HANDLES = 1024


def is_allowed_content_type(content_type: str) -> bool:
    return content_type.startswith(ALLOWED_CONTENT_TYPE_PREFIXES) or content_type in ALLOWED_CONTENT_TYPES


def processing_delay_ms(
    file_size: int,
    content_type: Optional[str],
    min_ms: int = 2000,
    max_ms: int = 10000,
) -> int:
    """
    Simulated processing time for a document.

    One millisecond per kilobyte, clamped to [min_ms, max_ms], plus a fixed
    bonus for images, PDFs and text.
    """
    delay = max(min(file_size // 1000, max_ms), min_ms)
    content_type = content_type or ""
    if content_type.startswith("image/"):
        delay += CONTENT_TYPE_BONUS_MS["image"]
    elif content_type == "application/pdf":
        delay += CONTENT_TYPE_BONUS_MS["pdf"]
    elif content_type.startswith("text/"):
        delay += CONTENT_TYPE_BONUS_MS["text"]
    return delay


@dataclass
class ProcessingStats:
    """Document counts per status plus current queue depth."""

    total_documents: int
    uploaded_count: int
    processing_count: int
    completed_count: int
    failed_count: int
    queue_message_count: int


class DocumentService:
    """
    Orchestrates document upload, retrieval, deletion and processing.

    Cross-store operations are not atomic and nothing is retried. Event
    publishing is best-effort and never fails the calling operation.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        table: MetadataTable,
        publisher: EventPublisher,
        dispatcher: Optional[ProcessingDispatcher] = None,
        max_upload_size_bytes: int = DEFAULT_MAX_UPLOAD_SIZE,
        min_delay_ms: int = 2000,
        max_delay_ms: int = 10000,
        failure_rate: float = 0.05,
        sleep: Callable[[float], None] = time.sleep,
        random_source: Callable[[], float] = random.random,
    ):
        self.blob_store = blob_store
        self.table = table
        self.publisher = publisher
        self.dispatcher = dispatcher
        self.max_upload_size_bytes = max_upload_size_bytes
        self.min_delay_ms = min_delay_ms
        self.max_delay_ms = max_delay_ms
        self.failure_rate = failure_rate
        self._sleep = sleep
        self._random = random_source
        self._handles: "OrderedDict[str, ProcessingHandle]" = OrderedDict()
        self._handles_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Upload / read / delete
    # ------------------------------------------------------------------

    def validate_upload(self, content: bytes, file_name: Optional[str], content_type: Optional[str]) -> None:
        """
        Validate an upload before anything is written.

        Raises:
            EmptyFileError, MissingFileNameError, FileTooLargeError,
            InvalidFileTypeError: All ValidationError subclasses.
        """
        if not content:
            raise EmptyFileError()
        if file_name is None or not file_name.strip():
            raise MissingFileNameError()
        self.check_upload_size(len(content))
        if content_type and not is_allowed_content_type(content_type):
            raise InvalidFileTypeError(content_type)

    def check_upload_size(self, size: int) -> None:
        if size > self.max_upload_size_bytes:
            raise FileTooLargeError(size=size, max_size=self.max_upload_size_bytes)

    def upload(self, content: bytes, file_name: Optional[str], content_type: Optional[str]) -> Document:
        """
        Store a new document and schedule its processing.

        Returns:
            The persisted record, in status UPLOADED.
        """
        logger.info(
            "document_upload_started",
            file_name=file_name,
            size=len(content) if content else 0,
            content_type=content_type,
        )
        self.validate_upload(content, file_name, content_type)
        content_type = content_type or DEFAULT_CONTENT_TYPE

        s3_key = self.blob_store.put(file_name, content_type, content)
        document = Document(
            document_id=str(uuid.uuid4()),
            file_name=file_name,
            content_type=content_type,
            file_size=len(content),
            s3_bucket=self.blob_store.bucket_name,
            s3_key=s3_key,
            status=DocumentStatus.UPLOADED,
        )
        document = self.table.put(document)

        self.publisher.publish(EventType.DOCUMENT_UPLOADED, document)
        self.schedule_processing(document.document_id)

        logger.info("document_uploaded", document_id=document.document_id, s3_key=s3_key)
        return document

    def get(self, document_id: str) -> Document:
        document = self.table.get(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    def list(self) -> List[Document]:
        return self.table.scan()

    def download(self, document_id: str) -> bytes:
        document = self.get(document_id)
        content = self.blob_store.get(document.s3_key)
        if content is None:
            logger.warning("document_content_missing", document_id=document_id, s3_key=document.s3_key)
            raise DocumentNotFoundError(document_id)
        return content

    def delete(self, document_id: str) -> None:
        """
        Remove content and metadata, then publish a deletion event.

        Not transactional: if the metadata delete fails after the blob is
        gone, the error propagates and the record is left behind.
        """
        document = self.get(document_id)
        self.blob_store.delete(document.s3_key)
        self.table.delete(document_id)
        self.publisher.publish_deleted(document_id, document.file_name)
        with self._handles_lock:
            self._handles.pop(document_id, None)
        logger.info("document_deleted", document_id=document_id)

    def stats(self) -> ProcessingStats:
        documents = self.table.scan()
        counts = Counter(document.status for document in documents)
        return ProcessingStats(
            total_documents=len(documents),
            uploaded_count=counts[DocumentStatus.UPLOADED],
            processing_count=counts[DocumentStatus.PROCESSING],
            completed_count=counts[DocumentStatus.COMPLETED],
            failed_count=counts[DocumentStatus.FAILED],
            queue_message_count=self.publisher.approximate_message_count(),
        )

    # ------------------------------------------------------------------
    # Background processing
    # ------------------------------------------------------------------

    def schedule_processing(self, document_id: str) -> Optional[ProcessingHandle]:
        if self.dispatcher is None:
            logger.warning("processing_not_scheduled", document_id=document_id, reason="no_dispatcher")
            return None

        handle = self.dispatcher.submit(self.process, document_id)
        with self._handles_lock:
            self._handles[document_id] = handle
            while len(self._handles) > MAX_TRACKED_HANDLES:
                self._handles.popitem(last=False)
        return handle

    def wait_for_processing(self, document_id: str, timeout: Optional[float] = None) -> Optional[Document]:
        """
        Block until the scheduled processing step for a document finishes.

        Returns:
            The current record, or None if it no longer exists.
        """
        with self._handles_lock:
            handle = self._handles.pop(document_id, None)
        if handle is not None:
            handle.result(timeout=timeout)
        return self.table.get(document_id)

    def process(self, document_id: str) -> Optional[Document]:
        """
        Run the simulated processing step for one document.

        Never raises: failures are recorded as FAILED plus a failure event.
        """
        try:
            document = self.table.get(document_id)
        except Exception as e:
            logger.error("processing_aborted", document_id=document_id, error=str(e))
            return None

        if document is None:
            logger.warning("processing_skipped", document_id=document_id, reason="document_not_found")
            return None
        if not can_transition(document.status, LifecycleEvent.START):
            logger.warning(
                "processing_skipped",
                document_id=document_id,
                reason="invalid_status",
                status=document.status.value,
            )
            return document

        logger.info("processing_started", document_id=document_id)
        try:
            document = self._apply(document, LifecycleEvent.START)
            self._simulate_work(document)
            notes = f"Document processed successfully at {utcnow().isoformat()}"
            document = self._apply(document, LifecycleEvent.COMPLETE, notes=notes)
        except Exception as e:
            logger.error(
                "processing_failed",
                document_id=document_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return self._fail(document, e)

        logger.info("processing_completed", document_id=document_id)
        return document

    def _apply(
        self,
        document: Document,
        event: LifecycleEvent,
        notes: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> Document:
        step = transition(document.status, event)
        updated = self.table.update_status(
            document.document_id,
            step.status,
            notes=notes,
            processed_at=utcnow() if step.stamps_processed_at else None,
            expected_status=document.status,
        )
        self.publisher.publish(step.publishes, updated, error_message=error_message)
        return updated

    def _simulate_work(self, document: Document) -> None:
        delay_ms = processing_delay_ms(
            document.file_size,
            document.content_type,
            min_ms=self.min_delay_ms,
            max_ms=self.max_delay_ms,
        )
        logger.info("processing_simulated", document_id=document.document_id, delay_ms=delay_ms)
        self._sleep(delay_ms / 1000)

        if self._random() < self.failure_rate:
            raise SimulatedProcessingError()

    def _fail(self, document: Document, error: Exception) -> Optional[Document]:
        error_message = str(error)
        try:
            return self._apply(
                document,
                LifecycleEvent.FAIL,
                notes=f"Processing failed: {error_message}",
                error_message=error_message,
            )
        except DocumentNotFoundError:
            logger.warning("processing_failed_record_missing", document_id=document.document_id)
            self.publisher.publish_failure_without_record(document.document_id, error_message)
        except InvalidTransitionError as e:
            logger.warning("processing_failure_not_recorded", document_id=document.document_id, error=e.message)
        except Exception as e:
            logger.error("processing_failure_not_recorded", document_id=document.document_id, error=str(e))
        return None
