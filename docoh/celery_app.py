"""
Celery application configuration.

Used when PROCESSING_BACKEND=celery: the simulated processing step runs on a
Celery worker with Redis as the broker.
"""
from celery import Celery

from docoh.config import get_settings

settings = get_settings()

celery_app = Celery(
    "docoh",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["docoh.tasks.processing_tasks"],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Processing failures are recorded on the document, never retried
    task_acks_late=False,
    task_max_retries=0,
    task_time_limit=120,  # well above the longest simulated delay
    task_soft_time_limit=90,

    # Result settings
    result_expires=3600,

    # Worker settings
    worker_prefetch_multiplier=1,
)

celery_app.conf.task_routes = {
    "docoh.tasks.processing_tasks.process_document": {"queue": "document_processing"},
}
