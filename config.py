"""
Configuration settings for the NeuroLearn SRS core.

Uses Pydantic Settings for environment variable management with .env file support.
Every variable is prefixed with NEUROLEARN_ (e.g. NEUROLEARN_DB_PATH).
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.srs.scheduler import SchedulerConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="NEUROLEARN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    db_path: Path = Field(
        default=Path.home() / ".neurolearn" / "cards.db",
        description="SQLite database holding flashcards and study sessions",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Minimum level written to stderr",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional log file (rotated at 5 MB)",
    )

    # ========================================
    # Scheduling (SM-2 family)
    # ========================================
    initial_ease: float = Field(
        default=2.5,
        description="Ease factor of a new card",
    )
    minimum_ease: float = Field(
        default=1.3,
        gt=0,
        description="Floor for the ease factor",
    )
    failure_penalty: float = Field(
        default=0.2,
        ge=0,
        description="Ease factor lost on an 'again' rating",
    )
    max_ease_delta: float = Field(
        default=0.15,
        ge=0,
        description="Largest ease increase a single review can give",
    )
    initial_interval: int = Field(
        default=1,
        ge=1,
        description="Days until the second review of a new card",
    )
    failure_interval: int = Field(
        default=1,
        ge=1,
        description="Days until a failed card comes back",
    )
    maximum_interval: int = Field(
        default=36500,
        ge=1,
        description="Cap on any review interval (days)",
    )

    # ========================================
    # Sessions
    # ========================================
    cognitive_load_window: int = Field(
        default=10,
        ge=1,
        description="Recent sessions considered for cognitive load",
    )
    max_session_size: int = Field(
        default=20,
        ge=1,
        description="Hard ceiling on cards per session",
    )
    min_session_size: int = Field(
        default=5,
        ge=1,
        description="Session size under the heaviest cognitive load",
    )
    minutes_per_card: float = Field(
        default=1.5,
        gt=0,
        description="Minutes budgeted per card when a study time is given",
    )
    risk_threshold: float = Field(
        default=0.3,
        ge=0,
        le=1,
        description="Forgetting probability that flags a card as at risk",
    )

    def get_scheduler_config(self) -> SchedulerConfig:
        """Build the scheduler configuration from these settings."""
        return SchedulerConfig(
            initial_ease=self.initial_ease,
            minimum_ease=self.minimum_ease,
            failure_penalty=self.failure_penalty,
            max_ease_delta=self.max_ease_delta,
            initial_interval=self.initial_interval,
            failure_interval=self.failure_interval,
            maximum_interval=self.maximum_interval,
            cognitive_load_window=self.cognitive_load_window,
            max_session_size=self.max_session_size,
            min_session_size=self.min_session_size,
            minutes_per_card=self.minutes_per_card,
            risk_threshold=self.risk_threshold,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
