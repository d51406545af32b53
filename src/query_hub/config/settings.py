"""
Configuration management for QueryHub.

This module provides environment-based configuration using Pydantic BaseSettings,
so the executor's connection pool and batching behaviour can be tuned per
deployment without code changes.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

import structlog
from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)

# Determine project root for resolving .env by default
PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"
ENV_FILE_OVERRIDE = os.getenv("QH_ENV_FILE")
if ENV_FILE_OVERRIDE:
    env_file_candidate = Path(ENV_FILE_OVERRIDE).expanduser()
    if not env_file_candidate.is_absolute():
        env_file_candidate = PROJECT_ROOT / env_file_candidate
    SETTINGS_ENV_FILE = env_file_candidate
else:
    SETTINGS_ENV_FILE = DEFAULT_ENV_FILE

PRODUCTION_URL_SCHEMES = ("mysql", "postgresql")


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Environment variables are loaded with the QH_ prefix. For example,
    QH_DB_BATCH_SIZE overrides DB_BATCH_SIZE. DATABASE_URL and LOG_LEVEL are
    also accepted without the prefix.

    Fields:
    - DATABASE_URL (required): SQLAlchemy database URL
    - ENVIRONMENT: Deployment environment (dev, staging, prod)
    - LOG_LEVEL: Logging level (uppercase)
    - DB_POOL_SIZE / DB_MAX_OVERFLOW / DB_POOL_TIMEOUT: Engine pool sizing
    - DB_STATEMENT_TIMEOUT: Per-statement timeout in seconds (0 disables)
    - DB_BATCH_SIZE: Rows per multi-row INSERT statement
    - DB_ECHO: Echo SQL through the SQLAlchemy engine logger
    """

    DATABASE_URL: str = Field(
        validation_alias=AliasChoices("QH_DATABASE_URL", "DATABASE_URL"),
        description="SQLAlchemy database URL",
    )
    ENVIRONMENT: Literal["dev", "staging", "prod"] = Field(
        default="dev",
        validation_alias=AliasChoices("QH_ENVIRONMENT", "ENVIRONMENT"),
        description="Deployment environment",
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        validation_alias=AliasChoices("QH_LOG_LEVEL", "LOG_LEVEL"),
        description="Logging level (uppercase)",
    )

    # Executor pool settings
    DB_POOL_SIZE: int = Field(
        default=10, ge=1, description="Database connection pool size"
    )
    DB_MAX_OVERFLOW: int = Field(
        default=20, ge=0, description="Connections allowed beyond the pool size"
    )
    DB_POOL_TIMEOUT: float = Field(
        default=30.0, gt=0, description="Seconds to wait for a pooled connection"
    )
    DB_STATEMENT_TIMEOUT: int = Field(
        default=0,
        ge=0,
        description="Statement timeout in seconds passed to the driver (0 = none)",
    )
    DB_BATCH_SIZE: int = Field(
        default=100, ge=1, description="Rows per multi-row INSERT statement"
    )
    DB_ECHO: bool = Field(default=False, description="Echo SQL via SQLAlchemy")

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def validate_production_database_url(self) -> "Settings":
        """Validate that production environment uses a server database.

        SQLite and other embedded engines are rejected in production.

        Raises:
            ValueError: If ENVIRONMENT is 'prod' and the URL is not MySQL/PostgreSQL
        """
        scheme = self.DATABASE_URL.split(":", 1)[0].split("+", 1)[0].lower()
        if self.ENVIRONMENT == "prod" and scheme not in PRODUCTION_URL_SCHEMES:
            db_url_preview = self.DATABASE_URL[:20]
            logger.error(
                "configuration.invalid_production_url",
                scheme=scheme,
            )
            raise ValueError(
                "Production environment requires a MySQL or PostgreSQL database. "
                f"got: {db_url_preview}..."
            )

        return self

    model_config = SettingsConfigDict(
        env_prefix="QH_",
        env_file=str(SETTINGS_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings instance.

    Uses LRU cache so the settings are loaded once per process and shared
    across the application lifecycle.

    Returns:
        Settings instance with loaded configuration
    """
    return Settings()


def get_engine_options(settings: Optional[Settings] = None) -> dict:
    """
    Build ``sqlalchemy.create_engine`` keyword arguments from settings.

    SQLite URLs use SQLAlchemy's default single-connection pool, so pool
    sizing options are only passed for server databases.

    Args:
        settings: Settings instance (defaults to ``get_settings()``)

    Returns:
        Dictionary of engine keyword arguments
    """
    settings = settings or get_settings()
    options: dict = {"echo": settings.DB_ECHO, "pool_pre_ping": True}
    if not settings.DATABASE_URL.startswith("sqlite"):
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
        )
    return options
