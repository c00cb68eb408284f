"""
Application Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Usage:
    from fluentpath.config import settings

    # Access settings
    db_url = settings.POSTGRES_URL
    bonus = settings.STREAK_BONUS_MULTIPLIER
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "FluentPath"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "fluentpath"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "fluentpath"

    @property
    def POSTGRES_URL(self) -> str:
        """Async PostgreSQL connection URL."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def POSTGRES_URL_SYNC(self) -> str:
        """Sync PostgreSQL connection URL for Alembic migrations."""
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Learner identity is resolved by the gateway and forwarded in this header
    LEARNER_ID_HEADER: str = "X-Learner-Id"

    # SM-2 scheduling
    SM2_INITIAL_INTERVAL_DAYS: int = 1
    SM2_INITIAL_EASE_FACTOR: float = 2.5
    SM2_MIN_EASE_FACTOR: float = 1.3
    SM2_PASSING_QUALITY: int = 3

    # Quality signals fed to the scheduler by the attempt workflow
    QUALITY_CORRECT: int = 4
    QUALITY_INCORRECT: int = 2

    # Review queue
    DUE_EXERCISES_DEFAULT_LIMIT: int = 10
    DUE_EXERCISES_MAX_LIMIT: int = 100

    # XP
    LESSON_DEFAULT_POINTS: int = 20  # Used when a lesson has no exercise points
    LESSON_MIN_XP: int = 10
    STREAK_BONUS_THRESHOLD_DAYS: int = 7
    STREAK_BONUS_MULTIPLIER: float = 1.5

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


@lru_cache()
def load_yaml_config() -> dict[str, Any]:
    """Load application configuration from config/default.yaml."""
    config_path = Path(__file__).parent.parent.parent.parent / "config" / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


yaml_config: dict[str, Any] = load_yaml_config()
