"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from docqueue.constants import (
    DEFAULT_JOB_TIMEOUT_MS,
    DEFAULT_QUEUE_INDEX,
    DEFAULT_WORKER_INTERVAL_MS,
    DEFAULT_WORKER_SIZE,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Document store
    store_backend: Literal["memory", "elasticsearch"] = "memory"
    elasticsearch_url: str = "http://localhost:9200"
    elasticsearch_username: str | None = None
    elasticsearch_password: str | None = None
    # Passed as the refresh parameter on writes so searches see them
    elasticsearch_refresh: Literal["true", "false", "wait_for"] = "wait_for"
    queue_index: str = DEFAULT_QUEUE_INDEX

    # Worker Configuration
    worker_interval_ms: int = DEFAULT_WORKER_INTERVAL_MS
    worker_size: int = DEFAULT_WORKER_SIZE
    job_timeout_ms: int = DEFAULT_JOB_TIMEOUT_MS
    worker_max_attempts: int | None = None

    # Observability
    otel_service_name: str = "docqueue"
    otel_exporter_otlp_endpoint: str | None = None
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
