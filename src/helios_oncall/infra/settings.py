"""
Application settings for helios-oncall.

This module defines all configuration settings using Pydantic BaseSettings.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings using Pydantic BaseSettings."""

    # Database settings
    database_url: str = Field(
        default="sqlite:///./helios_oncall.db",
        alias="DATABASE_URL",
    )
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    echo_sql: bool = Field(default=False, alias="ECHO_SQL")
    pool_size: int = Field(default=5, alias="DB_POOL_SIZE")
    max_overflow: int = Field(default=10, alias="DB_MAX_OVERFLOW")
    pool_timeout: int = Field(default=30, alias="DB_POOL_TIMEOUT")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    env: str = Field(default="dev", alias="ENV")  # dev|prod|test

    # Schedule horizon
    horizon_days: int = Field(default=45, alias="ONCALL_HORIZON_DAYS")
    horizon_interval_seconds: int = Field(default=3600, alias="ONCALL_HORIZON_INTERVAL_SECONDS")

    # Coverage queries
    coverage_lookaround_minutes: int = Field(default=60, alias="ONCALL_COVERAGE_LOOKAROUND_MINUTES")
    schedule_lookback_days: int = Field(default=7, alias="ONCALL_SCHEDULE_LOOKBACK_DAYS")
    schedule_lookahead_days: int = Field(default=90, alias="ONCALL_SCHEDULE_LOOKAHEAD_DAYS")
    list_limit: int = Field(default=500, alias="ONCALL_LIST_LIMIT")

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


def _resolve_env_file() -> str | None:
    # 1) Explicit override
    explicit = os.getenv("HELIOS_ONCALL_ENV_FILE")
    if explicit and Path(explicit).is_file():
        return explicit

    # 2) CWD .env
    cwd_env = Path.cwd() / ".env"
    if cwd_env.is_file():
        return str(cwd_env)
    return None


# Global settings instance (load from best-effort .env discovery)
_env_file = _resolve_env_file()
settings = Settings(_env_file=_env_file) if _env_file else Settings()  # type: ignore[call-arg]
