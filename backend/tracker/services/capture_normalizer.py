import asyncio
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image

logger = logging.getLogger(__name__)


@dataclass
class NormalizeResult:
    processed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def resize_to_width(source: Path, destination: Path, target_width: int) -> None:
    with Image.open(source) as image:
        width, height = image.size
        target_height = max(1, round(height * target_width / width))
        resized = image.resize((target_width, target_height), Image.Resampling.LANCZOS)
        # filenames are opaque tokens, so keep the input format instead of guessing from the extension
        resized.save(destination, format=image.format)


def archive_original(source: Path, originals_dir: Path) -> None:
    destination = originals_dir / source.name
    if not destination.exists():
        shutil.copy2(source, destination)


def _transform(source: Path, normalized_dir: Path, target_width: int, originals_dir: Path | None) -> None:
    if originals_dir is not None:
        archive_original(source, originals_dir)
    destination = normalized_dir / source.name
    try:
        resize_to_width(source, destination, target_width)
    except Exception:
        # a half-written file would be skipped as already normalized on the next run
        destination.unlink(missing_ok=True)
        raise


async def normalize_captures(
    source_dir: Path,
    normalized_dir: Path,
    target_width: int,
    originals_dir: Path | None = None,
) -> NormalizeResult:
    """Resize every raw capture that has no normalized counterpart yet.

    All transforms run concurrently and the call returns once each of them
    has settled. A failing file is logged and reported in ``failed``; its
    siblings still complete.
    """
    result = NormalizeResult()
    normalized_dir.mkdir(parents=True, exist_ok=True)
    if originals_dir is not None:
        originals_dir.mkdir(parents=True, exist_ok=True)

    if not source_dir.is_dir():
        logger.info("Source directory %s not found, nothing to normalize.", source_dir)
        return result

    logger.info("Copying and processing captures ...")

    pending: list[Path] = []
    for source in sorted(p for p in source_dir.iterdir() if p.is_file()):
        if (normalized_dir / source.name).exists():
            result.skipped.append(source.name)
        else:
            pending.append(source)

    outcomes = await asyncio.gather(
        *(asyncio.to_thread(_transform, source, normalized_dir, target_width, originals_dir) for source in pending),
        return_exceptions=True,
    )

    for source, outcome in zip(pending, outcomes):
        if isinstance(outcome, BaseException):
            logger.error("Failed to normalize %s: %s", source.name, outcome, exc_info=outcome)
            result.failed.append(source.name)
        else:
            result.processed.append(source.name)

    logger.info("Captures processed.")
    return result
