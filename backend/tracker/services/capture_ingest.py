import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.orm import Session

from tracker.models.entities import Capture
from tracker.services.identity import resolve_player_id
from tracker.services.recognition import RecognitionEngine

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    recorded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def capture_id_from_filename(filename: str) -> str:
    return Path(filename).stem


def extract_alias(text: str) -> str:
    # second line of the capture, taken verbatim; aliases match as exact strings
    lines = text.split("\n")
    if len(lines) < 2:
        return ""
    return lines[1]


def pending_captures(db: Session, normalized_dir: Path) -> list[Path]:
    """Normalized capture files that have no capture row yet, in name order."""
    if not normalized_dir.is_dir():
        return []
    recorded = set(db.execute(select(Capture.id)).scalars().all())
    pending: list[Path] = []
    for path in sorted(p for p in normalized_dir.iterdir() if p.is_file()):
        capture_id = capture_id_from_filename(path.name)
        if capture_id in recorded:
            continue
        recorded.add(capture_id)
        pending.append(path)
    return pending


async def _record_capture(db: Session, engine: RecognitionEngine, path: Path) -> str:
    text = await engine.recognize(path)
    alias = extract_alias(text)
    player_id = resolve_player_id(db, alias)
    db.add(Capture(id=capture_id_from_filename(path.name), player_id=player_id))
    db.commit()
    return alias


async def _consume(queue: asyncio.Queue, db: Session, engine: RecognitionEngine, result: IngestResult) -> None:
    while True:
        path = await queue.get()
        try:
            if path is None:
                return
            try:
                alias = await _record_capture(db, engine, path)
            except Exception:
                db.rollback()
                logger.exception("Failed to ingest capture %s", path.name)
                result.failed.append(path.name)
            else:
                result.recorded.append(path.name)
                logger.info("%d. Heart from %s", len(result.recorded), alias)
        finally:
            queue.task_done()


async def ingest_captures(db: Session, normalized_dir: Path, engine: RecognitionEngine) -> IngestResult:
    """Recognize and record every normalized capture not yet in the store.

    Captures go through a queue drained by a single consumer, so at most one
    recognition is in flight. Per-capture failures are logged and skipped.
    The engine is not terminated here; its owner releases it.
    """
    result = IngestResult()
    candidates = pending_captures(db, normalized_dir)
    logger.info("Collating %d captures ...", len(candidates))
    if not candidates:
        return result

    queue: asyncio.Queue[Path | None] = asyncio.Queue()
    for path in candidates:
        queue.put_nowait(path)
    queue.put_nowait(None)

    await _consume(queue, db, engine, result)
    return result
