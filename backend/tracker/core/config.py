from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "heart-tracker"
    environment: str = "dev"
    database_url: str = "sqlite+pysqlite:///tracker.db"
    redis_url: str = "redis://localhost:6379/0"

    source_dir: str = ".tracker"
    data_dir: str = "data"
    originals_dir: str = "data/orig"
    normalized_dir: str = "data/big"
    target_width: int = 320

    ocr_language: str = "eng"
    tesseract_cmd: str = ""

    log_format: str = "dev"
    log_level: str = "INFO"

    celery_task_always_eager: bool = False
    celery_task_eager_propagates: bool = False

    enable_scheduled_ingest: bool = False
    ingest_interval_minutes: int = 5

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
