"""
Centralized configuration using Pydantic BaseSettings.
All environment variables are loaded here - no hardcoded values.
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Group Decision Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Elimination
    DEFAULT_TURN_TIMEOUT_MINUTES: int = 10
    MAX_PARTICIPANTS: int = 8

    # Parameter suggestions
    MAX_SUGGESTED_K: int = 5
    MIN_FINAL_SET_SIZE: int = 3
    MAX_FINAL_SET_SIZE: int = 8

    # Seed for the elimination order shuffle and the final draw.
    # None draws from system entropy.
    RANDOM_SEED: Optional[int] = None

    # Filtering
    DEFAULT_VENUE_TIMEZONE: str = "UTC"

    # Telemetry
    ENABLE_OTEL: bool = False  # Default to False to prevent gRPC errors in dev
    ENABLE_PROMETHEUS: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance - singleton pattern."""
    return Settings()
