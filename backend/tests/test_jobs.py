from tracker.db.migrations import MigrationError
from tracker.tasks import jobs


def test_ingest_task_returns_pipeline_summary(monkeypatch):
    monkeypatch.setattr(jobs, "run_pipeline", lambda: {"recorded": 2})

    result = jobs.ingest_captures_task.apply().get()

    assert result == {"status": "ok", "recorded": 2}


def test_ingest_task_reports_migration_failure(monkeypatch):
    def failing_pipeline():
        raise MigrationError(3, "CREATE TABLE broken(;")

    monkeypatch.setattr(jobs, "run_pipeline", failing_pipeline)

    result = jobs.ingest_captures_task.apply().get()

    assert result["status"] == "error"
    assert "003" in result["reason"]
