"""
Document processing background task.

Worker-side entry point for the simulated processing step.
"""
from typing import Any, Dict, Optional

import structlog

from docoh.celery_app import celery_app
from docoh.config import get_settings
from docoh.dependencies import build_document_service
from docoh.services.document_service import DocumentService

logger = structlog.get_logger(__name__)

_service: Optional[DocumentService] = None


def get_worker_service() -> DocumentService:
    """Lazily build the worker's DocumentService (no dispatcher: it only processes)."""
    global _service
    if _service is None:
        _service = build_document_service(get_settings())
    return _service


@celery_app.task(name="docoh.tasks.processing_tasks.process_document")
def process_document(document_id: str) -> Optional[Dict[str, Any]]:
    """
    Process one uploaded document.

    Args:
        document_id: Identifier of the document record

    Returns:
        The final record as a JSON-ready dict, or None if it no longer exists
    """
    logger.info("processing_task_received", document_id=document_id)
    document = get_worker_service().process(document_id)
    if document is None:
        return None
    return document.model_dump(mode="json", by_alias=True)
