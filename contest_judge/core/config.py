"""
Settings module
Database, Redis queue, Judge0, local execution service and worker pool settings.
"""
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # App
    APP_NAME: str = "Contest Judge Service"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # FastAPI
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_KEY: Optional[str] = None

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "contest_judge"

    # e.g. sqlite+aiosqlite:///./contest_judge.db for local development
    DATABASE_URL_OVERRIDE: Optional[str] = None

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Redis (production judge queue)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0
    USE_REDIS_QUEUE: bool = False
    JUDGE_QUEUE_NAME: str = "judge_queue"
    JUDGE_QUEUE_RESULT_TTL_SECONDS: int = 3600

    @property
    def REDIS_URL(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # Judge0 (remote judge)
    JUDGE0_API_URL: Optional[str] = None
    JUDGE0_API_KEY: Optional[str] = None
    JUDGE0_USE_RAPIDAPI: bool = False
    JUDGE0_RAPIDAPI_HOST: str = "judge0-ce.p.rapidapi.com"
    JUDGE0_REQUEST_TIMEOUT: float = 30.0
    JUDGE0_PROBE_ON_STARTUP: bool = True

    # Local execution service (fallback judge)
    USE_EXECUTION_SERVICE: bool = False
    EXECUTION_SERVICE_URL: str = "http://localhost:3001"
    EXECUTION_SERVICE_TIMEOUT: float = 60.0

    # Accepts every submission without running it. Development only.
    ALLOW_PASSTHROUGH_JUDGE: bool = False

    # Judge worker pool
    ENABLE_JUDGE_WORKER: bool = True
    JUDGE_WORKER_CONCURRENCY: int = 4
    QUEUE_POLL_INTERVAL: float = 0.1
    # Seconds stop() lets in-flight judging finish before cancelling it
    JUDGE_WORKER_SHUTDOWN_TIMEOUT: float = 10.0
    # Startup: re-queue pending submissions and running ones older than this
    RECOVER_UNFINISHED_ON_STARTUP: bool = True
    JUDGE_STALE_RUNNING_SECONDS: int = 600

    # Competition defaults
    DEFAULT_COMPETITION_DURATION_MINUTES: int = 120

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Return the singleton settings object"""
    return Settings()


settings = get_settings()
