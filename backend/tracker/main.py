import asyncio
import logging
import sys
from pathlib import Path

from tracker.core.config import Settings, get_settings
from tracker.core.logging import configure_logging
from tracker.db.migrations import MigrationError, apply_migrations
from tracker.db.session import create_db_engine, make_session_factory
from tracker.services.capture_ingest import ingest_captures
from tracker.services.capture_normalizer import normalize_captures
from tracker.services.recognition import RecognitionEngine, open_recognition_engine

logger = logging.getLogger(__name__)


async def _run(settings: Settings, engine: RecognitionEngine | None = None) -> dict:
    db_engine = create_db_engine(settings.database_url)
    try:
        applied = apply_migrations(db_engine)

        Path(settings.data_dir).mkdir(parents=True, exist_ok=True)
        normalized_dir = Path(settings.normalized_dir)
        normalized = await normalize_captures(
            Path(settings.source_dir),
            normalized_dir,
            settings.target_width,
            originals_dir=Path(settings.originals_dir),
        )

        recognizer = engine or RecognitionEngine(settings.ocr_language, settings.tesseract_cmd or None)
        SessionLocal = make_session_factory(db_engine)
        with SessionLocal() as db:
            async with open_recognition_engine(recognizer) as handle:
                ingested = await ingest_captures(db, normalized_dir, handle)
    finally:
        db_engine.dispose()

    return {
        "migrations_applied": applied,
        "normalized": len(normalized.processed),
        "normalize_failed": normalized.failed,
        "recorded": len(ingested.recorded),
        "ingest_failed": ingested.failed,
    }


def run_pipeline(settings: Settings | None = None, engine: RecognitionEngine | None = None) -> dict:
    """Run migrate, normalize and ingest once.

    Raises :class:`MigrationError` before any capture is touched if the
    schema cannot be brought up to date.
    """
    return asyncio.run(_run(settings or get_settings(), engine))


def main() -> int:
    configure_logging()
    try:
        summary = run_pipeline()
    except MigrationError as exc:
        logger.error("Aborting: %s", exc)
        return 1
    logger.info("Run complete: %s", summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
