from celery import Celery
from celery.schedules import crontab

from tracker.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "tracker",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["tracker.tasks.jobs"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    task_always_eager=settings.celery_task_always_eager,
    task_eager_propagates=settings.celery_task_eager_propagates,
    # the OCR engine is a single shared resource
    worker_concurrency=1,
    worker_prefetch_multiplier=1,
)

if settings.enable_scheduled_ingest:
    celery_app.conf.beat_schedule = {
        "ingest-captures": {
            "task": "tracker.tasks.jobs.ingest_captures_task",
            "schedule": crontab(minute=f"*/{settings.ingest_interval_minutes}"),
        },
    }
