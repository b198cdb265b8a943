"""
Unit tests for the document lifecycle service.

Uses the in-memory stores from conftest; processing runs when a test
drains the deferred dispatcher.
"""
import pytest

from docoh.exceptions import (
    DocumentNotFoundError,
    EmptyFileError,
    FileTooLargeError,
    InvalidFileTypeError,
    MetadataStoreError,
    MissingFileNameError,
)
from docoh.models.document import DocumentStatus
from docoh.services.dispatcher import ThreadPoolDispatcher
from docoh.services.document_service import (
    DEFAULT_CONTENT_TYPE,
    DocumentService,
    is_allowed_content_type,
    processing_delay_ms,
)


class TestUpload:
    """Tests for DocumentService.upload."""

    def test_upload_stores_content_and_record(self, document_service, blob_store, metadata_table, publisher):
        """Test a valid upload writes the blob, the record and one event."""
        document = document_service.upload(b"hello", "a.txt", "text/plain")

        assert document.status == DocumentStatus.UPLOADED
        assert document.file_name == "a.txt"
        assert document.file_size == 5
        assert document.s3_bucket == "test-bucket"
        assert document.s3_key.startswith("documents/")
        assert document.s3_key.endswith("-a.txt")
        assert blob_store.objects[document.s3_key] == b"hello"
        assert metadata_table.get(document.document_id) == document
        assert publisher.event_types() == ["DOCUMENT_UPLOADED"]

    def test_upload_schedules_processing(self, document_service, dispatcher, metadata_table):
        """Test the record is UPLOADED until the processing step runs."""
        document = document_service.upload(b"hello", "a.txt", "text/plain")

        assert document.document_id in dispatcher.handles
        assert metadata_table.get(document.document_id).status == DocumentStatus.UPLOADED

    def test_upload_ids_are_unique(self, document_service):
        first = document_service.upload(b"one", "same.txt", "text/plain")
        second = document_service.upload(b"two", "same.txt", "text/plain")

        assert first.document_id != second.document_id
        assert first.s3_key != second.s3_key

    def test_missing_content_type_defaults(self, document_service):
        document = document_service.upload(b"data", "blob.bin", None)

        assert document.content_type == DEFAULT_CONTENT_TYPE

    @pytest.mark.parametrize(
        "content,file_name,content_type,error",
        [
            (b"", "a.txt", "text/plain", EmptyFileError),
            (b"", None, "text/plain", EmptyFileError),
            (b"data", None, "text/plain", MissingFileNameError),
            (b"data", "   ", "text/plain", MissingFileNameError),
            (b"data", "evil.exe", "application/x-msdownload", InvalidFileTypeError),
        ],
    )
    def test_rejected_upload_writes_nothing(
        self, document_service, blob_store, metadata_table, publisher, dispatcher,
        content, file_name, content_type, error,
    ):
        """Test validation failures leave every store untouched."""
        with pytest.raises(error):
            document_service.upload(content, file_name, content_type)

        assert blob_store.objects == {}
        assert metadata_table.writes == 0
        assert publisher.events == []
        assert dispatcher.handles == {}

    def test_file_too_large(self, blob_store, metadata_table, publisher):
        service = DocumentService(blob_store, metadata_table, publisher, max_upload_size_bytes=10)

        with pytest.raises(FileTooLargeError):
            service.upload(b"x" * 11, "big.txt", "text/plain")

        assert service.upload(b"x" * 10, "ok.txt", "text/plain").file_size == 10


class TestReadAndDelete:
    """Tests for get, list, download and delete."""

    def test_get_unknown(self, document_service):
        with pytest.raises(DocumentNotFoundError):
            document_service.get("does-not-exist")

    def test_list(self, document_service):
        document_service.upload(b"one", "1.txt", "text/plain")
        document_service.upload(b"two", "2.txt", "text/plain")

        names = sorted(d.file_name for d in document_service.list())
        assert names == ["1.txt", "2.txt"]

    def test_download(self, document_service):
        document = document_service.upload(b"%PDF-1.4", "doc.pdf", "application/pdf")

        assert document_service.download(document.document_id) == b"%PDF-1.4"

    def test_download_missing_content(self, document_service, blob_store):
        """Test a record whose blob vanished reports not found."""
        document = document_service.upload(b"hello", "a.txt", "text/plain")
        blob_store.objects.clear()

        with pytest.raises(DocumentNotFoundError):
            document_service.download(document.document_id)

    def test_delete(self, document_service, blob_store, metadata_table, publisher):
        """Test delete removes content and metadata and publishes an event."""
        document = document_service.upload(b"hello", "a.txt", "text/plain")

        document_service.delete(document.document_id)

        assert blob_store.objects == {}
        assert metadata_table.items == {}
        assert publisher.events[-1]["eventType"] == "DOCUMENT_DELETED"
        assert publisher.events[-1]["fileName"] == "a.txt"
        with pytest.raises(DocumentNotFoundError):
            document_service.get(document.document_id)
        with pytest.raises(DocumentNotFoundError):
            document_service.download(document.document_id)

    def test_delete_unknown(self, document_service, publisher):
        with pytest.raises(DocumentNotFoundError):
            document_service.delete("does-not-exist")

        assert publisher.events == []


class TestProcessing:
    """Tests for the simulated processing step."""

    def test_processing_completes(self, document_service, dispatcher, publisher, sleeps):
        document = document_service.upload(b"hello", "a.txt", "text/plain")

        dispatcher.run_all()

        processed = document_service.get(document.document_id)
        assert processed.status == DocumentStatus.COMPLETED
        assert processed.processed_at is not None
        assert processed.processing_notes.startswith("Document processed successfully at ")
        assert publisher.event_types(document.document_id) == [
            "DOCUMENT_UPLOADED",
            "PROCESSING_STARTED",
            "PROCESSING_COMPLETED",
        ]
        assert sleeps == [2.2]

    def test_processing_failure(self, blob_store, metadata_table, publisher, dispatcher):
        """Test an injected failure ends in FAILED with an explanatory note."""
        service = DocumentService(
            blob_store, metadata_table, publisher, dispatcher,
            sleep=lambda seconds: None,
            random_source=lambda: 0.0,
        )
        document = service.upload(b"hello", "a.txt", "text/plain")

        dispatcher.run_all()

        failed = service.get(document.document_id)
        assert failed.status == DocumentStatus.FAILED
        assert failed.processed_at is not None
        assert failed.processing_notes == "Processing failed: Simulated processing failure"
        assert publisher.event_types() == ["DOCUMENT_UPLOADED", "PROCESSING_STARTED", "PROCESSING_FAILED"]
        assert publisher.events[-1]["errorMessage"] == "Simulated processing failure"

    def test_failure_rate_zero_never_fails(self, blob_store, metadata_table, publisher, dispatcher):
        service = DocumentService(
            blob_store, metadata_table, publisher, dispatcher,
            failure_rate=0.0,
            sleep=lambda seconds: None,
            random_source=lambda: 0.0,
        )
        document = service.upload(b"hello", "a.txt", "text/plain")

        dispatcher.run_all()

        assert service.get(document.document_id).status == DocumentStatus.COMPLETED

    def test_status_write_failure_marks_failed(self, document_service, dispatcher, metadata_table, publisher):
        """Test a failed write to PROCESSING still records FAILED."""
        real_update = metadata_table.update_status

        def flaky_update(document_id, status, **kwargs):
            if status == DocumentStatus.PROCESSING:
                raise MetadataStoreError("throttled")
            return real_update(document_id, status, **kwargs)

        metadata_table.update_status = flaky_update
        document = document_service.upload(b"hello", "a.txt", "text/plain")

        dispatcher.run_all()

        failed = document_service.get(document.document_id)
        assert failed.status == DocumentStatus.FAILED
        assert failed.processing_notes == "Processing failed: throttled"
        assert publisher.event_types() == ["DOCUMENT_UPLOADED", "PROCESSING_FAILED"]

    def test_delete_during_processing(self, blob_store, metadata_table, publisher, dispatcher):
        """Test deleting mid-processing does not resurrect the record."""
        uploaded = {}

        def delete_while_sleeping(seconds):
            service.delete(uploaded["id"])

        service = DocumentService(
            blob_store, metadata_table, publisher, dispatcher,
            sleep=delete_while_sleeping,
            random_source=lambda: 0.99,
        )
        uploaded["id"] = service.upload(b"hello", "a.txt", "text/plain").document_id

        dispatcher.run_all()

        assert metadata_table.items == {}
        assert publisher.event_types() == [
            "DOCUMENT_UPLOADED",
            "PROCESSING_STARTED",
            "DOCUMENT_DELETED",
            "PROCESSING_FAILED",
        ]
        assert "fileName" not in publisher.events[-1]
        assert publisher.events[-1]["documentId"] == uploaded["id"]

    def test_terminal_status_set_by_another_writer_is_kept(
        self, blob_store, metadata_table, publisher, dispatcher,
    ):
        """Test a record finished elsewhere mid-processing is never moved out of its terminal status."""
        uploaded = {}

        def finish_elsewhere(seconds):
            metadata_table.update_status(uploaded["id"], DocumentStatus.FAILED, notes="other worker")

        service = DocumentService(
            blob_store, metadata_table, publisher, dispatcher,
            sleep=finish_elsewhere,
            random_source=lambda: 0.99,
        )
        uploaded["id"] = service.upload(b"hello", "a.txt", "text/plain").document_id

        assert dispatcher.handles[uploaded["id"]].run() is None

        record = service.get(uploaded["id"])
        assert record.status == DocumentStatus.FAILED
        assert record.processing_notes == "other worker"
        assert publisher.event_types() == ["DOCUMENT_UPLOADED", "PROCESSING_STARTED"]

    def test_process_unknown_document(self, document_service, publisher):
        assert document_service.process("does-not-exist") is None
        assert publisher.events == []

    def test_process_terminal_document_is_noop(self, document_service, dispatcher, publisher):
        """Test a second processing run leaves a COMPLETED record alone."""
        document = document_service.upload(b"hello", "a.txt", "text/plain")
        dispatcher.run_all()
        events_before = list(publisher.events)

        result = document_service.process(document.document_id)

        assert result.status == DocumentStatus.COMPLETED
        assert publisher.events == events_before

    def test_wait_for_processing(self, document_service):
        document = document_service.upload(b"hello", "a.txt", "text/plain")

        processed = document_service.wait_for_processing(document.document_id, timeout=5)

        assert processed.status == DocumentStatus.COMPLETED

    def test_wait_for_unknown_document(self, document_service):
        assert document_service.wait_for_processing("does-not-exist") is None

    def test_no_dispatcher_leaves_uploaded(self, blob_store, metadata_table, publisher):
        service = DocumentService(blob_store, metadata_table, publisher)
        document = service.upload(b"hello", "a.txt", "text/plain")

        assert service.schedule_processing(document.document_id) is None
        assert service.get(document.document_id).status == DocumentStatus.UPLOADED

    def test_concurrent_processing(self, blob_store, metadata_table, publisher):
        """Test documents processed on a thread pool each reach a terminal status."""
        dispatcher = ThreadPoolDispatcher(max_workers=4)
        service = DocumentService(
            blob_store, metadata_table, publisher, dispatcher,
            sleep=lambda seconds: None,
            random_source=lambda: 0.99,
        )
        try:
            ids = [service.upload(f"doc {i}".encode(), f"{i}.txt", "text/plain").document_id for i in range(10)]
            results = [service.wait_for_processing(document_id, timeout=10) for document_id in ids]
        finally:
            dispatcher.shutdown(wait=True)

        assert all(r.status == DocumentStatus.COMPLETED for r in results)
        for document_id in ids:
            assert publisher.event_types(document_id) == [
                "DOCUMENT_UPLOADED",
                "PROCESSING_STARTED",
                "PROCESSING_COMPLETED",
            ]


class TestStats:
    """Tests for processing statistics."""

    def test_counts_per_status(self, document_service, dispatcher, metadata_table):
        done = document_service.upload(b"one", "1.txt", "text/plain")
        dispatcher.handles[done.document_id].run()
        failed = document_service.upload(b"two", "2.txt", "text/plain")
        metadata_table.update_status(failed.document_id, DocumentStatus.FAILED)
        document_service.upload(b"three", "3.txt", "text/plain")

        stats = document_service.stats()

        assert stats.total_documents == 3
        assert stats.uploaded_count == 1
        assert stats.processing_count == 0
        assert stats.completed_count == 1
        assert stats.failed_count == 1
        assert stats.queue_message_count == 3
        assert (
            stats.uploaded_count + stats.processing_count + stats.completed_count + stats.failed_count
            == stats.total_documents
        )

    def test_empty(self, document_service):
        stats = document_service.stats()

        assert stats.total_documents == 0
        assert stats.completed_count == 0


class TestProcessingDelay:
    """Tests for the simulated processing time."""

    @pytest.mark.parametrize(
        "size,content_type,expected",
        [
            (0, "text/plain", 2200),
            (0, None, 2000),
            (3_000_000, "application/msword", 3000),
            (5_000_000, "application/pdf", 5500),
            (50_000_000, "image/png", 11000),
        ],
    )
    def test_delay(self, size, content_type, expected):
        assert processing_delay_ms(size, content_type) == expected

    def test_custom_bounds(self):
        assert processing_delay_ms(0, None, min_ms=10, max_ms=20) == 10
        assert processing_delay_ms(1_000_000, None, min_ms=10, max_ms=20) == 20


class TestContentTypes:
    @pytest.mark.parametrize(
        "content_type",
        [
            "text/plain",
            "text/csv",
            "image/jpeg",
            "application/pdf",
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        ],
    )
    def test_allowed(self, content_type):
        assert is_allowed_content_type(content_type)

    @pytest.mark.parametrize("content_type", ["application/zip", "video/mp4", "application/x-msdownload"])
    def test_rejected(self, content_type):
        assert not is_allowed_content_type(content_type)
