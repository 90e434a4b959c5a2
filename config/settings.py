"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interview.db")
    APP_CONFIG_PATH: str = "app_config.json"
    PATTERNS_PATH: str = ""

    DEFAULT_COMPANY: str = "Tech Company"
    MESSAGE_LOG_LIMIT: int = 50
    MESSAGE_LOG_KEEP: int = 44

    TRAILING_WINDOW: int = 3
    MAX_SPECIFIC_QUESTIONS: int = 7
    MAX_WARNINGS: int = 2

    DIALOGUE_MAX_ATTEMPTS: int = 3
    DIALOGUE_BACKOFF_S: float = 0.5

    REPORT_JOB_MAX_ATTEMPTS: int = 3
    REPORT_JOB_BACKOFF_S: float = 5.0
    JOB_VISIBILITY_TIMEOUT_S: int = 600
    WORKER_ENABLED: bool = True
    WORKER_POLL_S: float = 1.0

    INACTIVITY_MINUTES: int = 30
    SWEEP_INTERVAL_S: float = 60.0

    ANSWER_EXCERPT_CHARS: int = 500

    CODE_RUNNER_URL: str = ""
    CODE_RUNNER_API_KEY_ENV: str = "CODE_RUNNER_API_KEY"

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
