"""
DynamoDB-backed metadata table for document records.

Items are keyed by ``documentId``. ``status`` is a DynamoDB reserved word, so
update expressions go through attribute name placeholders.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from docoh.exceptions import DocumentNotFoundError, InvalidTransitionError, MetadataStoreError
from docoh.models.document import Document, DocumentStatus
from docoh.services.ports import MetadataTable

logger = structlog.get_logger(__name__)


class DynamoDBMetadataTable(MetadataTable):
    """Document metadata stored in a DynamoDB table (boto3 Table resource)."""

    def __init__(self, table):
        self._table = table

    def put(self, document: Document) -> Document:
        try:
            self._table.put_item(Item=document.to_item())
        except (BotoCoreError, ClientError) as e:
            logger.error("metadata_save_failed", document_id=document.document_id, error=str(e))
            raise MetadataStoreError(f"Failed to save document metadata: {e}") from e

        logger.info("metadata_saved", document_id=document.document_id)
        return document

    def get(self, document_id: str) -> Optional[Document]:
        try:
            response = self._table.get_item(Key={"documentId": document_id})
        except (BotoCoreError, ClientError) as e:
            logger.error("metadata_get_failed", document_id=document_id, error=str(e))
            raise MetadataStoreError(f"Failed to retrieve document metadata: {e}") from e

        item = response.get("Item")
        if not item:
            logger.info("metadata_not_found", document_id=document_id)
            return None
        return Document.from_item(item)

    def scan(self) -> List[Document]:
        items: List[Dict[str, Any]] = []
        kwargs: Dict[str, Any] = {}
        try:
            while True:
                response = self._table.scan(**kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (BotoCoreError, ClientError) as e:
            logger.error("metadata_scan_failed", error=str(e))
            raise MetadataStoreError(f"Failed to retrieve all documents: {e}") from e

        logger.info("metadata_scanned", count=len(items))
        return [Document.from_item(item) for item in items]

    def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        notes: Optional[str] = None,
        processed_at: Optional[datetime] = None,
        expected_status: Optional[DocumentStatus] = None,
    ) -> Document:
        assignments = ["#status = :status"]
        values: Dict[str, Any] = {":status": status.value}
        if processed_at is not None:
            assignments.append("processedAt = :processed_at")
            values[":processed_at"] = processed_at.isoformat()
        if notes:
            assignments.append("processingNotes = :notes")
            values[":notes"] = notes

        condition = "attribute_exists(documentId)"
        if expected_status is not None:
            condition += " AND #status = :expected"
            values[":expected"] = expected_status.value

        try:
            response = self._table.update_item(
                Key={"documentId": document_id},
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression=condition,
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                if expected_status is None:
                    raise DocumentNotFoundError(document_id) from e
                current = self.get(document_id)
                if current is None:
                    raise DocumentNotFoundError(document_id) from e
                logger.warning(
                    "metadata_status_conflict",
                    document_id=document_id,
                    expected=expected_status.value,
                    actual=current.status.value,
                )
                raise InvalidTransitionError(current.status.value, status.value) from e
            logger.error("metadata_update_failed", document_id=document_id, error=str(e))
            raise MetadataStoreError(f"Failed to update document status: {e}") from e
        except BotoCoreError as e:
            logger.error("metadata_update_failed", document_id=document_id, error=str(e))
            raise MetadataStoreError(f"Failed to update document status: {e}") from e

        logger.info("metadata_status_updated", document_id=document_id, status=status.value)
        return Document.from_item(response["Attributes"])

    def delete(self, document_id: str) -> None:
        try:
            self._table.delete_item(Key={"documentId": document_id})
        except (BotoCoreError, ClientError) as e:
            logger.error("metadata_delete_failed", document_id=document_id, error=str(e))
            raise MetadataStoreError(f"Failed to delete document metadata: {e}") from e
        logger.info("metadata_deleted", document_id=document_id)

    def ping(self) -> None:
        try:
            self._table.load()
        except (BotoCoreError, ClientError) as e:
            raise MetadataStoreError(f"Table is not reachable: {e}") from e
