"""
S3-backed blob store for uploaded document content.
"""
from typing import Optional
from uuid import uuid4

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from docoh.exceptions import BlobStoreError
from docoh.services.ports import BlobStore

logger = structlog.get_logger(__name__)

_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


class S3BlobStore(BlobStore):
    """Stores document bytes under ``documents/<uuid>-<file name>``."""

    def __init__(self, s3_client, bucket_name: str):
        self._client = s3_client
        self._bucket = bucket_name

    @property
    def bucket_name(self) -> str:
        return self._bucket

    @staticmethod
    def build_key(file_name: str) -> str:
        return f"documents/{uuid4()}-{file_name}"

    def put(self, file_name: str, content_type: str, content: bytes) -> str:
        s3_key = self.build_key(file_name)
        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=s3_key,
                Body=content,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("s3_upload_failed", key=s3_key, error=str(e))
            raise BlobStoreError(f"S3 upload failed: {e}") from e

        logger.info("s3_object_stored", bucket=self._bucket, key=s3_key, size=len(content))
        return s3_key

    def get(self, key: str) -> Optional[bytes]:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_KEY_CODES:
                logger.info("s3_object_missing", key=key)
                return None
            logger.error("s3_download_failed", key=key, error=str(e))
            raise BlobStoreError(f"Failed to download document from S3: {e}") from e
        except BotoCoreError as e:
            logger.error("s3_download_failed", key=key, error=str(e))
            raise BlobStoreError(f"Failed to download document from S3: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.error("s3_delete_failed", key=key, error=str(e))
            raise BlobStoreError(f"Failed to delete document from S3: {e}") from e
        logger.info("s3_object_deleted", bucket=self._bucket, key=key)

    def ping(self) -> None:
        try:
            self._client.head_bucket(Bucket=self._bucket)
        except (BotoCoreError, ClientError) as e:
            raise BlobStoreError(f"Bucket {self._bucket} is not reachable: {e}") from e
