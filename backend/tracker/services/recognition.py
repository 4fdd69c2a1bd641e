import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import pytesseract
from PIL import Image

logger = logging.getLogger(__name__)


class RecognitionEngineError(RuntimeError):
    pass


class RecognitionEngine:
    """Process-wide OCR engine handle.

    Only one recognition may run at a time; callers serialize their work.
    ``terminate`` releases the handle and may be called once.
    """

    def __init__(self, language: str = "eng", tesseract_cmd: str | None = None):
        self.language = language
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self._terminated = False

    @property
    def terminated(self) -> bool:
        return self._terminated

    def _recognize_sync(self, path: Path) -> str:
        with Image.open(path) as image:
            return pytesseract.image_to_string(image, lang=self.language)

    async def recognize(self, path: Path) -> str:
        if self._terminated:
            raise RecognitionEngineError("recognition engine already terminated")
        return await asyncio.to_thread(self._recognize_sync, path)

    def terminate(self) -> None:
        if self._terminated:
            raise RecognitionEngineError("recognition engine terminated twice")
        self._terminated = True
        logger.debug("Recognition engine terminated.")


@asynccontextmanager
async def open_recognition_engine(engine: RecognitionEngine) -> AsyncIterator[RecognitionEngine]:
    """Own ``engine`` for the duration of the block and release it on exit."""
    try:
        yield engine
    finally:
        engine.terminate()
