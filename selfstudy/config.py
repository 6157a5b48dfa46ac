"""
Configuration settings for the self-study course player.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageBackend(str, Enum):
    """Durable key-value storage backends."""

    JSON = "json"  # One JSON file per key under data_dir
    SQLITE = "sqlite"  # Single SQLite file under data_dir
    MEMORY = "memory"  # Nothing survives the process


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SELFSTUDY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Ingestion endpoint
    # ========================================
    ingest_endpoint: str = Field(
        default="http://localhost:3000/api/training-matrix/ingest",
        description="URL the completion payload is POSTed to",
    )
    ingest_timeout_seconds: float = Field(
        default=15.0,
        description="Timeout for a single ingestion request",
    )
    retry_delay_seconds: float = Field(
        default=10.0,
        description="Fixed delay before the single submission retry",
    )
    max_submission_attempts: int = Field(
        default=2,
        ge=1,
        description="Total delivery attempts, first send included",
    )

    # ========================================
    # Persistence
    # ========================================
    persist_debounce_seconds: float = Field(
        default=0.3,
        description="Coalescing window for attempt snapshots",
    )
    data_dir: Path = Field(
        default=Path.home() / ".selfstudy",
        description="Directory for durable storage",
    )
    storage_backend: StorageBackend = StorageBackend.JSON
    attempt_storage_key: str = Field(
        default="selfstudy-attempt",
        description="Storage key of the in-progress attempt snapshot",
    )
    last_payload_storage_key: str = Field(
        default="selfstudy-last-payload",
        description="Storage key of the most recently submitted payload",
    )

    # ========================================
    # Misc
    # ========================================
    user_agent: str = Field(
        default="selfstudy-player/1.0",
        description="User agent recorded in the payload audit block",
    )
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
