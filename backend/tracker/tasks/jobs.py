from celery.utils.log import get_task_logger

from tracker.celery_app import celery_app
from tracker.db.migrations import MigrationError
from tracker.main import run_pipeline

logger = get_task_logger(__name__)


@celery_app.task(bind=True)
def ingest_captures_task(self):
    try:
        summary = run_pipeline()
    except MigrationError as exc:
        logger.error("Ingestion aborted: %s", exc)
        return {"status": "error", "reason": str(exc)}
    return {"status": "ok", **summary}
