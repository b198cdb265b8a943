"""
Application configuration using pydantic-settings.

Loads configuration from environment variables with sensible defaults.
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # AWS
    aws_region: str = "us-east-1"
    aws_endpoint_url: Optional[str] = None  # e.g. http://localhost:4566 for LocalStack
    s3_bucket_name: str = "docoh-documents"
    dynamodb_table_name: str = "docoh-documents"
    sqs_queue_name: str = "docoh-document-events"
    sqs_queue_url: Optional[str] = None

    # Uploads
    max_upload_size_mb: int = 10

    # Background processing
    processing_backend: str = "thread"  # "thread" or "celery"
    processing_max_workers: int = 8
    processing_min_delay_ms: int = 2000
    processing_max_delay_ms: int = 10000
    simulated_failure_rate: float = 0.05

    # Redis (Celery broker and rate limit storage)
    redis_url: str = "redis://localhost:6379/0"

    # Application
    service_name: str = "DocOh-Service"
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: str = ""
    sentry_dsn: Optional[str] = None
    environment: str = "development"

    @property
    def max_upload_size_bytes(self) -> int:
        """Get maximum upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
