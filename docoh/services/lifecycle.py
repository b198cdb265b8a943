"""
Document lifecycle state machine.

UPLOADED -> PROCESSING -> COMPLETED | FAILED. Terminal statuses accept no
further events. The transition table is pure so it can be tested without
any store.
"""
import enum
from dataclasses import dataclass
from typing import Dict, Tuple

from docoh.exceptions import InvalidTransitionError
from docoh.models.document import DocumentStatus
from docoh.models.events import EventType


class LifecycleEvent(str, enum.Enum):
    """Events driving the processing step."""

    START = "START"
    COMPLETE = "COMPLETE"
    FAIL = "FAIL"


@dataclass(frozen=True)
class Transition:
    """Outcome of applying an event: next status and its side effects."""

    status: DocumentStatus
    publishes: EventType
    stamps_processed_at: bool = False


_TRANSITIONS: Dict[Tuple[DocumentStatus, LifecycleEvent], Transition] = {
    (DocumentStatus.UPLOADED, LifecycleEvent.START): Transition(
        DocumentStatus.PROCESSING, EventType.PROCESSING_STARTED
    ),
    (DocumentStatus.PROCESSING, LifecycleEvent.COMPLETE): Transition(
        DocumentStatus.COMPLETED, EventType.PROCESSING_COMPLETED, stamps_processed_at=True
    ),
    (DocumentStatus.PROCESSING, LifecycleEvent.FAIL): Transition(
        DocumentStatus.FAILED, EventType.PROCESSING_FAILED, stamps_processed_at=True
    ),
    # The status write to PROCESSING itself can fail.
    (DocumentStatus.UPLOADED, LifecycleEvent.FAIL): Transition(
        DocumentStatus.FAILED, EventType.PROCESSING_FAILED, stamps_processed_at=True
    ),
}


def transition(current: DocumentStatus, event: LifecycleEvent) -> Transition:
    """
    Resolve the transition for ``event`` applied in status ``current``.

    Raises:
        InvalidTransitionError: If the event is not allowed from ``current``.
    """
    try:
        return _TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidTransitionError(current.value, event.value) from None


def can_transition(current: DocumentStatus, event: LifecycleEvent) -> bool:
    return (current, event) in _TRANSITIONS
