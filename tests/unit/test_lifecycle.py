"""
Unit tests for the document lifecycle state machine.
"""
import pytest

from docoh.exceptions import InvalidTransitionError
from docoh.models.document import DocumentStatus
from docoh.models.events import EventType
from docoh.services.lifecycle import LifecycleEvent, can_transition, transition


class TestAllowedTransitions:
    """Tests for the transitions the processing step relies on."""

    def test_start_from_uploaded(self):
        step = transition(DocumentStatus.UPLOADED, LifecycleEvent.START)

        assert step.status == DocumentStatus.PROCESSING
        assert step.publishes == EventType.PROCESSING_STARTED
        assert step.stamps_processed_at is False

    def test_complete_from_processing(self):
        step = transition(DocumentStatus.PROCESSING, LifecycleEvent.COMPLETE)

        assert step.status == DocumentStatus.COMPLETED
        assert step.publishes == EventType.PROCESSING_COMPLETED
        assert step.stamps_processed_at is True

    @pytest.mark.parametrize("current", [DocumentStatus.UPLOADED, DocumentStatus.PROCESSING])
    def test_fail_before_terminal(self, current):
        """Test FAIL is accepted before a terminal status is reached."""
        step = transition(current, LifecycleEvent.FAIL)

        assert step.status == DocumentStatus.FAILED
        assert step.publishes == EventType.PROCESSING_FAILED
        assert step.stamps_processed_at is True


class TestRejectedTransitions:
    """Tests for transitions that must never happen."""

    @pytest.mark.parametrize("current", [DocumentStatus.COMPLETED, DocumentStatus.FAILED])
    @pytest.mark.parametrize("event", list(LifecycleEvent))
    def test_terminal_statuses_accept_nothing(self, current, event):
        assert not can_transition(current, event)
        with pytest.raises(InvalidTransitionError):
            transition(current, event)

    def test_complete_requires_processing(self):
        """Test UPLOADED cannot jump straight to COMPLETED."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            transition(DocumentStatus.UPLOADED, LifecycleEvent.COMPLETE)

        assert exc_info.value.details == {"status": "UPLOADED", "event": "COMPLETE"}

    def test_start_twice(self):
        assert not can_transition(DocumentStatus.PROCESSING, LifecycleEvent.START)
