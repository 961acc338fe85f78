"""
Configuration settings for the user directory.

Uses Pydantic Settings to load environment variables for the database
connection, the VK API client, logging, and directory behavior.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("user_directory", alias="DB_NAME")
    db_pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(10, alias="DB_POOL_MAX_SIZE")
    users_table: str = Field("users", alias="USERS_TABLE")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # VK API
    vk_api_token: Optional[str] = Field(None, alias="VK_API_TOKEN")
    vk_api_version: str = Field("5.199", alias="VK_API_VERSION")
    vk_api_base_url: str = Field("https://api.vk.com/method", alias="VK_API_BASE_URL")
    vk_api_timeout: float = Field(10.0, alias="VK_API_TIMEOUT")

    # Directory behavior
    dedupe_inflight_creations: bool = Field(True, alias="DEDUPE_INFLIGHT_CREATIONS")
    autosave_interval_seconds: float = Field(30.0, alias="AUTOSAVE_INTERVAL_SECONDS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a PostgreSQL DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


__all__ = ["Settings", "build_dsn", "get_settings"]
