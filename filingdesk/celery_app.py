"""
Celery application configuration.

Configures Celery for background filing work with Redis as the broker.
"""
from celery import Celery

from filingdesk.config import get_settings

settings = get_settings()

# Create Celery application
celery_app = Celery(
    "filingdesk",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["filingdesk.tasks.filing_tasks"],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,  # Acknowledge after task completes (not before)
    task_reject_on_worker_lost=True,  # Requeue if worker dies
    task_time_limit=120,
    task_soft_time_limit=90,

    # Result settings
    result_expires=86400,  # Results expire after 24 hours

    # Worker settings
    worker_prefetch_multiplier=1,

    # Retry settings
    task_default_retry_delay=60,
    task_max_retries=3,
)

celery_app.conf.task_routes = {
    "filingdesk.tasks.filing_tasks.notify_filing_submitted": {"queue": "notifications"},
    "filingdesk.tasks.filing_tasks.deliver_receipt": {"queue": "receipts"},
}
