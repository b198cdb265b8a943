"""
SQS-backed publisher for document lifecycle events.

Publishing is best-effort: a failed send is logged and swallowed so the
operation that triggered the event still succeeds.
"""
import json
import threading
from typing import Any, Dict, List, Optional

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from docoh.exceptions import EventQueueError
from docoh.models.document import Document
from docoh.models.events import (
    EventType,
    build_deleted_event,
    build_document_event,
    build_failed_event_without_record,
)
from docoh.services.ports import EventPublisher

logger = structlog.get_logger(__name__)


class SQSEventPublisher(EventPublisher):
    """Sends JSON event bodies to an SQS queue."""

    def __init__(self, sqs_client, queue_name: Optional[str] = None, queue_url: Optional[str] = None):
        if not queue_url and not (queue_name and queue_name.strip()):
            raise ValueError("Queue name is not configured")
        self._client = sqs_client
        self._queue_name = queue_name.strip() if queue_name else None
        self._queue_url = queue_url
        self._lock = threading.Lock()

    @property
    def queue_url(self) -> str:
        """Resolve the queue URL from its name on first use."""
        if self._queue_url is None:
            with self._lock:
                if self._queue_url is None:
                    try:
                        response = self._client.get_queue_url(QueueName=self._queue_name)
                    except (BotoCoreError, ClientError) as e:
                        logger.error("sqs_queue_url_failed", queue_name=self._queue_name, error=str(e))
                        raise EventQueueError(f"Failed to resolve SQS queue URL: {e}") from e
                    self._queue_url = response["QueueUrl"]
                    logger.info("sqs_queue_url_resolved", queue_url=self._queue_url)
        return self._queue_url

    def send(self, body: Dict[str, Any]) -> str:
        """
        Send one event body.

        Returns:
            The SQS message id.

        Raises:
            EventQueueError: If the message could not be sent.
        """
        try:
            response = self._client.send_message(
                QueueUrl=self.queue_url,
                MessageBody=json.dumps(body),
                MessageAttributes={
                    "EventType": {"DataType": "String", "StringValue": str(body["eventType"])},
                    "DocumentId": {"DataType": "String", "StringValue": str(body["documentId"])},
                },
            )
        except (BotoCoreError, ClientError) as e:
            raise EventQueueError(f"Failed to send message to SQS: {e}") from e
        return response["MessageId"]

    def _publish_best_effort(self, body: Dict[str, Any]) -> None:
        try:
            message_id = self.send(body)
        except Exception as e:
            logger.error(
                "event_publish_failed",
                event_type=body.get("eventType"),
                document_id=body.get("documentId"),
                error=str(e),
            )
            return
        logger.info(
            "event_published",
            event_type=body["eventType"],
            document_id=body["documentId"],
            message_id=message_id,
        )

    def publish(
        self,
        event_type: EventType,
        document: Document,
        error_message: Optional[str] = None,
    ) -> None:
        self._publish_best_effort(build_document_event(event_type, document, error_message))

    def publish_deleted(self, document_id: str, file_name: Optional[str]) -> None:
        self._publish_best_effort(build_deleted_event(document_id, file_name))

    def publish_failure_without_record(self, document_id: str, error_message: str) -> None:
        self._publish_best_effort(build_failed_event_without_record(document_id, error_message))

    def receive(self, max_messages: int = 10, wait_time_seconds: int = 10) -> List[Dict[str, Any]]:
        """Long-poll for up to ``max_messages`` messages."""
        try:
            response = self._client.receive_message(
                QueueUrl=self.queue_url,
                MaxNumberOfMessages=max_messages,
                WaitTimeSeconds=wait_time_seconds,
                MessageAttributeNames=["All"],
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("sqs_receive_failed", error=str(e))
            raise EventQueueError(f"Failed to receive messages from SQS: {e}") from e

        messages = response.get("Messages", [])
        logger.info("sqs_messages_received", count=len(messages))
        return messages

    def delete_message(self, receipt_handle: str) -> None:
        try:
            self._client.delete_message(QueueUrl=self.queue_url, ReceiptHandle=receipt_handle)
        except (BotoCoreError, ClientError) as e:
            logger.error("sqs_delete_failed", error=str(e))
            raise EventQueueError(f"Failed to delete message from SQS: {e}") from e

    def approximate_message_count(self) -> int:
        try:
            response = self._client.get_queue_attributes(
                QueueUrl=self.queue_url,
                AttributeNames=["ApproximateNumberOfMessages"],
            )
            return int(response["Attributes"]["ApproximateNumberOfMessages"])
        except Exception as e:
            logger.error("sqs_queue_depth_failed", error=str(e))
            return 0

    def ping(self) -> None:
        try:
            self._client.get_queue_attributes(
                QueueUrl=self.queue_url,
                AttributeNames=["QueueArn"],
            )
        except (BotoCoreError, ClientError) as e:
            raise EventQueueError(f"Queue is not reachable: {e}") from e
