"""
Domain models for DocOh.
"""
from docoh.models.document import Document, DocumentStatus
from docoh.models.events import EventType

__all__ = [
    "Document",
    "DocumentStatus",
    "EventType",
]
