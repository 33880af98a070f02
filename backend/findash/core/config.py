"""Application-wide settings for the finance dashboard backend."""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_base_url: str = Field(default="http://localhost:3000")
    log_level: str = Field(default="INFO")

    # Token signing; loaded once at startup, the app refuses to start without it
    jwt_secret: Optional[str] = Field(default=None)
    jwt_algorithm: str = Field(default="HS256")
    token_ttl_hours: int = Field(default=24)

    database_url: str = Field(default="sqlite+aiosqlite:///storage/findash.db")
    database_echo: bool = Field(default=False)
    # Create tables on startup instead of relying on alembic (local runs, tests)
    database_create_all: bool = Field(default=False)

    # Per route-class admission limits
    auth_rate_window_seconds: int = Field(default=15 * 60)
    auth_rate_max_requests: int = Field(default=5)
    api_rate_window_seconds: int = Field(default=15 * 60)
    api_rate_max_requests: int = Field(default=100)
    strict_rate_window_seconds: int = Field(default=60)
    strict_rate_max_requests: int = Field(default=10)
    rate_limit_sweep_interval_seconds: float = Field(default=5 * 60)

    transaction_alert_threshold: float = Field(default=1000.0)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
