from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from conftest import FakeRecognitionEngine, make_png
from tracker import main as main_module
from tracker.core.config import Settings
from tracker.db.migrations import MigrationError
from tracker.main import run_pipeline
from tracker.models.entities import Alias, Capture, Player


def _settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+pysqlite:///{tmp_path / 'tracker.db'}",
        source_dir=str(tmp_path / ".tracker"),
        data_dir=str(tmp_path / "data"),
        originals_dir=str(tmp_path / "data" / "orig"),
        normalized_dir=str(tmp_path / "data" / "big"),
        target_width=320,
    )


def test_run_pipeline_end_to_end(tmp_path):
    settings = _settings(tmp_path)
    make_png(tmp_path / ".tracker" / "100.png")
    make_png(tmp_path / ".tracker" / "101.png")
    engine = FakeRecognitionEngine({"100.png": "Heart\nAlice\n...", "101.png": "Heart\nAlice\n..."})

    summary = run_pipeline(settings, engine=engine)

    assert summary["migrations_applied"] == [1, 2, 3, 4]
    assert summary["normalized"] == 2
    assert summary["recorded"] == 2
    assert engine.terminate_count == 1
    assert (tmp_path / "data" / "orig" / "100.png").exists()

    db_engine = create_engine(settings.database_url)
    with Session(db_engine) as db:
        players = db.execute(select(Player)).scalars().all()
        assert [p.name for p in players] == ["Alice"]
        assert len(db.execute(select(Alias)).scalars().all()) == 1
        captures = db.execute(select(Capture.id, Capture.player_id).order_by(Capture.id)).all()
        assert captures == [("100", players[0].id), ("101", players[0].id)]
    db_engine.dispose()


def test_rerun_records_nothing_new(tmp_path):
    settings = _settings(tmp_path)
    make_png(tmp_path / ".tracker" / "100.png")
    run_pipeline(settings, engine=FakeRecognitionEngine({"100.png": "Heart\nAlice\n"}))

    engine = FakeRecognitionEngine({"100.png": "Heart\nAlice\n"})
    summary = run_pipeline(settings, engine=engine)

    assert summary["migrations_applied"] == []
    assert summary["normalized"] == 0
    assert summary["recorded"] == 0
    assert engine.recognized == []
    assert engine.terminate_count == 1


def test_run_pipeline_without_source_dir(tmp_path):
    settings = _settings(tmp_path)
    engine = FakeRecognitionEngine()

    summary = run_pipeline(settings, engine=engine)

    assert summary["recorded"] == 0
    assert (tmp_path / "data" / "big").is_dir()
    assert engine.events == [("terminate", "")]


def test_main_exits_nonzero_on_migration_failure(monkeypatch):
    def failing_pipeline():
        raise MigrationError(2, "CREATE TABLE broken(;")

    monkeypatch.setattr(main_module, "configure_logging", lambda: None)
    monkeypatch.setattr(main_module, "run_pipeline", failing_pipeline)

    assert main_module.main() == 1
