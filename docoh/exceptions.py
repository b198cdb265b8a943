"""
Custom exceptions for DocOh.

Provides a hierarchy of exceptions with error codes for consistent error handling.
"""
from typing import Optional, Dict, Any


class DocOhError(Exception):
    """
    Base exception for all DocOh errors.

    Attributes:
        error_code: Unique error code (e.g., DOC-001)
        message: Human-readable error message
        details: Additional error context
    """
    error_code: str = "DOC-000"
    http_status: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# Document Errors (DOC-1XX)
class DocumentNotFoundError(DocOhError):
    """Document metadata or content not found."""
    error_code = "DOC-101"
    http_status = 404

    def __init__(self, document_id: str, **kwargs):
        message = f"Document not found: {document_id}"
        super().__init__(message, details={"document_id": document_id}, **kwargs)


class InvalidTransitionError(DocOhError):
    """Lifecycle event is not allowed from the current status."""
    error_code = "DOC-110"
    http_status = 409

    def __init__(self, current: str, event: str, **kwargs):
        message = f"Cannot apply {event} to a document in status {current}"
        super().__init__(message, details={"status": current, "event": event}, **kwargs)


class SimulatedProcessingError(DocOhError):
    """Injected failure of the simulated processing step."""
    error_code = "DOC-120"
    http_status = 500

    def __init__(self, message: str = "Simulated processing failure", **kwargs):
        super().__init__(message, **kwargs)


# Validation Errors (DOC-7XX)
class ValidationError(DocOhError):
    """Input validation failed."""
    error_code = "DOC-700"
    http_status = 400

    def __init__(self, message: str = "Validation failed", errors: list = None, **kwargs):
        details = kwargs.pop("details", {})
        details["errors"] = errors or []
        super().__init__(message, details=details, **kwargs)


class EmptyFileError(ValidationError):
    """Uploaded file has no content."""
    error_code = "DOC-701"

    def __init__(self, **kwargs):
        super().__init__("File is empty", **kwargs)


class MissingFileNameError(ValidationError):
    """Uploaded file has no name."""
    error_code = "DOC-702"

    def __init__(self, **kwargs):
        super().__init__("File name is required", **kwargs)


class FileTooLargeError(ValidationError):
    """File exceeds maximum size limit."""
    error_code = "DOC-703"

    def __init__(self, size: int, max_size: int, **kwargs):
        message = f"File size exceeds maximum limit of {max_size // (1024 * 1024)}MB"
        super().__init__(message, details={"size": size, "max_size": max_size}, **kwargs)


class InvalidFileTypeError(ValidationError):
    """Content type is not on the allow-list."""
    error_code = "DOC-704"

    def __init__(self, content_type: str, **kwargs):
        message = f"File type not supported: {content_type}"
        super().__init__(message, details={"content_type": content_type}, **kwargs)


# External Service Errors (DOC-9XX)
class ExternalServiceError(DocOhError):
    """External service call failed."""
    error_code = "DOC-900"
    http_status = 500

    def __init__(self, service_name: str, message: str = None, **kwargs):
        msg = message or f"External service '{service_name}' is unavailable"
        super().__init__(msg, details={"service": service_name}, **kwargs)


class BlobStoreError(ExternalServiceError):
    """Object storage operation failed."""
    error_code = "DOC-901"

    def __init__(self, message: str = None, **kwargs):
        super().__init__("s3", message, **kwargs)


class MetadataStoreError(ExternalServiceError):
    """Metadata table operation failed."""
    error_code = "DOC-902"

    def __init__(self, message: str = None, **kwargs):
        super().__init__("dynamodb", message, **kwargs)


class EventQueueError(ExternalServiceError):
    """Message queue operation failed."""
    error_code = "DOC-903"

    def __init__(self, message: str = None, **kwargs):
        super().__init__("sqs", message, **kwargs)
