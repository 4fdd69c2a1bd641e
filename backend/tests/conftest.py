from pathlib import Path

import pytest
from PIL import Image

from tracker.db.migrations import apply_migrations
from tracker.db.session import create_db_engine, make_session_factory
from tracker.services.recognition import RecognitionEngine


class FakeRecognitionEngine(RecognitionEngine):
    """Returns canned text per filename and records every call in order."""

    def __init__(self, texts: dict[str, str | Exception] | None = None):
        super().__init__()
        self.texts = texts or {}
        self.events: list[tuple[str, str]] = []

    async def recognize(self, path: Path) -> str:
        self.events.append(("recognize", path.name))
        value = self.texts.get(path.name, "")
        if isinstance(value, Exception):
            raise value
        return value

    def terminate(self) -> None:
        self.events.append(("terminate", ""))
        super().terminate()

    @property
    def recognized(self) -> list[str]:
        return [name for kind, name in self.events if kind == "recognize"]

    @property
    def terminate_count(self) -> int:
        return sum(1 for kind, _ in self.events if kind == "terminate")


def make_png(path: Path, size: tuple[int, int] = (640, 480)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color=(200, 40, 40)).save(path, format="PNG")
    return path


@pytest.fixture
def db_engine(tmp_path):
    engine = create_db_engine(f"sqlite+pysqlite:///{tmp_path / 'tracker.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def db(db_engine):
    apply_migrations(db_engine)
    SessionLocal = make_session_factory(db_engine)
    with SessionLocal() as session:
        yield session
