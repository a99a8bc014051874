from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "courier"
    APP_ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    # In unit tests / CI we avoid long startup retries against external deps.
    ENSURE_EXTERNAL_DEPS_ON_STARTUP: bool = True

    DATABASE_URL: str
    # Local runs without Alembic.
    CREATE_SCHEMA_ON_STARTUP: bool = False
    SEED_SAMPLE_DATA: bool = False

    REDIS_URL: str = "redis://localhost:6379/0"
    MESSAGE_CACHE_TTL_S: int = 24 * 60 * 60

    WEBHOOK_URL: str = ""
    WEBHOOK_AUTH_KEY: str = ""
    WEBHOOK_AUTH_HEADER: str = "x-ins-auth-key"

    DISPATCH_AUTOSTART: bool = True
    DISPATCH_INTERVAL_S: float = 120.0
    DISPATCH_BATCH_SIZE: int = 2
    DISPATCH_BATCH_TIMEOUT_S: float = 10.0
    DISPATCH_MESSAGE_TIMEOUT_S: float = 5.0

    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"
    CELERY_TASK_ALWAYS_EAGER: bool = False

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
