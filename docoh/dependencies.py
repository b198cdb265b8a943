"""
Service construction and FastAPI dependencies.

Builds the AWS-backed adapters from settings. Tests override
``get_document_service`` with a service wired to in-memory fakes.
"""
from functools import lru_cache
from typing import Optional

import boto3

from docoh.config import Settings, get_settings
from docoh.services.blob_store import S3BlobStore
from docoh.services.dispatcher import ProcessingDispatcher, build_dispatcher
from docoh.services.document_service import DocumentService
from docoh.services.event_publisher import SQSEventPublisher
from docoh.services.metadata_table import DynamoDBMetadataTable


def _client_kwargs(settings: Settings) -> dict:
    kwargs = {"region_name": settings.aws_region}
    if settings.aws_endpoint_url:
        kwargs["endpoint_url"] = settings.aws_endpoint_url
    return kwargs


def build_document_service(
    settings: Settings,
    dispatcher: Optional[ProcessingDispatcher] = None,
) -> DocumentService:
    """Wire a DocumentService to S3, DynamoDB and SQS."""
    kwargs = _client_kwargs(settings)
    s3_client = boto3.client("s3", **kwargs)
    sqs_client = boto3.client("sqs", **kwargs)
    table = boto3.resource("dynamodb", **kwargs).Table(settings.dynamodb_table_name)

    return DocumentService(
        blob_store=S3BlobStore(s3_client, settings.s3_bucket_name),
        table=DynamoDBMetadataTable(table),
        publisher=SQSEventPublisher(
            sqs_client,
            queue_name=settings.sqs_queue_name,
            queue_url=settings.sqs_queue_url,
        ),
        dispatcher=dispatcher,
        max_upload_size_bytes=settings.max_upload_size_bytes,
        min_delay_ms=settings.processing_min_delay_ms,
        max_delay_ms=settings.processing_max_delay_ms,
        failure_rate=settings.simulated_failure_rate,
    )


@lru_cache
def get_document_service() -> DocumentService:
    """FastAPI dependency returning the process-wide DocumentService."""
    settings = get_settings()
    dispatcher = build_dispatcher(
        settings.processing_backend,
        max_workers=settings.processing_max_workers,
    )
    return build_document_service(settings, dispatcher=dispatcher)
