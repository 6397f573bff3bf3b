from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App environment
    env: str = Field(default="development", alias="ENV")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./proximity.db", alias="DATABASE_URL")

    # Geofencing
    region_capacity: int = Field(default=20, alias="REGION_CAPACITY")  # Platform limit on monitored regions
    region_reconcile_interval_minutes: int = Field(default=15, alias="REGION_RECONCILE_INTERVAL_MINUTES")  # 0 disables

    # System notifications
    # Unset → notifications are kept in the in-process notification center
    notification_push_url: Optional[str] = Field(default=None, alias="NOTIFICATION_PUSH_URL")
    notification_push_token: Optional[str] = Field(default=None, alias="NOTIFICATION_PUSH_TOKEN")
    notification_timeout_seconds: float = Field(default=10.0, alias="NOTIFICATION_TIMEOUT_SECONDS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    console_log_level: str = Field(default="INFO", alias="CONSOLE_LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
