"""
Configuration settings for the quizlog trainer.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage Layout
    # ========================================
    storage_root: Path = Field(
        default=Path("."),
        description="Base directory holding the bank, result and error trees",
    )
    data_dir: str = Field(
        default="data",
        description="Question bank tree: {data_dir}/{subject}/{topic}.txt",
    )
    results_dir: str = Field(
        default="log",
        description="Exam outcome tree: {results_dir}/{subject}/{date}_{time}.txt",
    )
    errors_dir: str = Field(
        default="error",
        description="Wrong-answer tree, parallel to the outcome tree",
    )
    mastery_file: str = Field(
        default="mastery.json",
        description="Mastery sidecar, stored inside the errors tree",
    )

    # ─── Persistence collaborator ──────────────────────────────────────────────
    storage_backend: Literal["local", "http"] = Field(
        default="local",
        description="'local' reads the filesystem directly, 'http' talks to the quizlog API",
    )
    api_base_url: str = Field(
        default="http://127.0.0.1:3000",
        description="Base URL of the persistence API (http backend only)",
    )
    http_timeout: float = Field(
        default=10.0,
        description="Request timeout in seconds for the http backend",
    )
    fallback_files: list[str] = Field(
        default_factory=lambda: [
            "英语/2025-11-20_18-38-10.txt",
            "英语/2025-11-21_10-49-58.txt",
            "英语/2025-11-21_12-46-39.txt",
            "英语/2025-11-21_14-18-33.txt",
        ],
        description="Relative paths tried when the listing endpoint is unavailable",
    )

    # ========================================
    # Exams & Reports
    # ========================================
    question_count: int = Field(
        default=10,
        ge=1,
        description="Questions drawn per exam",
    )
    trend_window_days: int = Field(
        default=30,
        ge=1,
        description="Window for the score trend report",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default="logs/quizlog.log",
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # API Server
    # ========================================
    api_host: str = Field(
        default="127.0.0.1",
        description="API server host",
    )
    api_port: int = Field(
        default=3000,
        description="API server port",
    )

    @property
    def data_path(self) -> Path:
        """Absolute-or-relative path of the question bank tree."""
        return self.storage_root / self.data_dir

    @property
    def mastery_path(self) -> str:
        """Mastery sidecar path relative to the storage root."""
        return f"{self.errors_dir}/{self.mastery_file}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
