# batch_hub/settings.py
"""
Batch Hub Settings - PostgreSQL store, OCR collaborator, sale tuning.
"""
from __future__ import annotations
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices

class Settings(BaseSettings):
    # =========================================================================
    # File Storage (logs)
    # =========================================================================
    DATA_ROOT: Path = Field(
        default=(Path(__file__).resolve().parents[2] / "batch-data"),
        validation_alias=AliasChoices("DATA_ROOT", "BATCH_HUB_DATA_ROOT"),
    )
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # =========================================================================
    # PostgreSQL Database
    # =========================================================================
    DB_HOST: str = Field(default="localhost", validation_alias="DB_HOST")
    DB_PORT: int = Field(default=5432, validation_alias="DB_PORT")
    DB_NAME: str = Field(default="batch_hub", validation_alias="DB_NAME")
    DB_USER: str = Field(default="postgres", validation_alias="DB_USER")
    DB_PASSWORD: str = Field(default="postgres", validation_alias="DB_PASSWORD")

    # Connection pool settings
    DB_POOL_SIZE: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    DB_MAX_OVERFLOW: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")
    DB_ECHO: bool = Field(default=False, validation_alias="DB_ECHO")

    # Full URL override (e.g. sqlite+aiosqlite:///./batch_hub.db for local runs)
    DATABASE_URL: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")
    DB_CREATE_TABLES: bool = Field(
        default=False,
        description="Create missing tables on startup (local/dev only)",
    )

    # =========================================================================
    # OCR collaborator
    # =========================================================================
    OCR_SERVICE_URL: Optional[str] = Field(default=None, validation_alias="OCR_SERVICE_URL")
    OCR_TIMEOUT: float = Field(default=30.0, validation_alias="OCR_TIMEOUT")

    # =========================================================================
    # Sales
    # =========================================================================
    SALE_CONTENTION_RETRIES: int = Field(
        default=1,
        ge=0,
        description="Re-reads allowed after a lost conditional update before reporting out of stock",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

settings = Settings()
