"""Webhook logger configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

StorageMode = Literal["file", "database"]

DEFAULT_MAX_BODY_BYTES = 10 * 1024 * 1024


class Settings(BaseSettings):
    """Environment-driven settings for the webhook logger.

    The storage mode is explicit when ``WEBHOOK_LOGGER_STORAGE`` is set;
    otherwise production environments use the database and everything else
    uses local files.
    """

    environment: str = "development"
    storage: StorageMode | None = None

    # File storage
    logs_dir: Path = Path("logs")

    # Database storage
    database_url: str = Field(
        "postgresql://localhost:5432/webhook_logger",
        validation_alias=AliasChoices("WEBHOOK_LOGGER_DATABASE_URL", "DATABASE_URL", "database_url"),
    )
    db_pool_min_size: int = Field(1, ge=1)
    db_pool_max_size: int = Field(10, ge=1)
    db_pool_timeout: float = Field(30.0, gt=0)

    # HTTP server
    host: str = "0.0.0.0"
    port: int = Field(
        3000,
        validation_alias=AliasChoices("WEBHOOK_LOGGER_PORT", "PORT", "port"),
    )
    max_body_bytes: int = Field(DEFAULT_MAX_BODY_BYTES, gt=0)

    log_level: str = "INFO"

    model_config = {
        "env_prefix": "WEBHOOK_LOGGER_",
        "env_file": ".env",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @field_validator("storage", mode="before")
    @classmethod
    def _lower_storage(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def _check_pool_bounds(self) -> Settings:
        if self.db_pool_min_size > self.db_pool_max_size:
            raise ValueError("db_pool_min_size must not exceed db_pool_max_size")
        return self

    @property
    def storage_backend(self) -> StorageMode:
        if self.storage is not None:
            return self.storage
        return "database" if self.environment.lower() == "production" else "file"
