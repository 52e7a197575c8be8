"""Application configuration objects."""
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings used to configure the application."""

    model_config = SettingsConfigDict(
        env_prefix="STOCK_QR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = Field(
        default="Stock QR Inventory",
        description="Human friendly name for the API.",
    )
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Deployment environment flag used for logging.",
    )
    storage_backend: Literal["memory", "file", "sql"] = Field(
        default="file",
        description="Where the JSON documents are kept.",
    )
    data_dir: Path = Field(
        default=Path("./stock_qr_data"),
        description="Directory holding one JSON file per document (file backend).",
    )
    database_url: str = Field(
        default="sqlite:///./stock_qr.db",
        description="SQLAlchemy compatible database URL (sql backend).",
    )
    echo_sql: bool = Field(
        default=False,
        description="Enable SQL echo logging for debugging.",
    )
    transaction_limit: int = Field(
        default=1000,
        ge=1,
        description="Number of most recent transactions kept in the log.",
    )
    qr_prefix: str = Field(
        default="PRD-",
        description="Prefix prepended to a product id to build its QR code.",
    )
    default_min_stock: int = Field(
        default=10,
        ge=0,
        description="Low stock threshold used when a product has none.",
    )
    log_level: str = Field(default="INFO")

    @field_validator("database_url")
    @classmethod
    def _validate_sqlite_path(cls, value: str) -> str:
        if value.startswith("sqlite") and ":memory:" not in value and "///" not in value:
            raise ValueError("SQLite database URLs should be in the form sqlite:///path/to/db")
        return value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level {value!r}")
        return level


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of :class:`Settings`."""

    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


__all__ = ["Settings", "configure_logging", "get_settings"]
