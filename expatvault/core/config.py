"""
Configuration management for the Expat Vault service.

This module centralizes environment-driven configuration using Pydantic's
`BaseSettings`. Routes, collaborators and scripts consume the shared
`settings` instance so that every layer sees the same configuration.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration sourced from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    # General application settings
    API_TITLE: str = "Expat Vault API"
    API_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = Field("development", pattern=r"^(development|staging|production)$")
    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2])

    # Security / auth
    SECRET_KEY: str = "changeme"
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None
    ALLOWED_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    # Row storage
    MONGODB_URL: AnyUrl = Field("mongodb://localhost:27017")
    MONGODB_DATABASE: str = "expatvault"
    DOCUMENTS_COLLECTION: str = "documents"
    REMINDERS_COLLECTION: str = "document_reminders"

    REDIS_URL: Optional[AnyUrl] = Field("redis://localhost:6379/0")

    # Object storage
    STORAGE_BACKEND: str = Field("local", pattern=r"^(local|s3|gcs)$")
    S3_BUCKET_NAME: Optional[str] = None
    S3_REGION: Optional[str] = None
    S3_ENDPOINT_URL: Optional[AnyUrl] = None
    GCS_BUCKET_NAME: Optional[str] = None
    GOOGLE_SERVICE_ACCOUNT_FILE: Optional[Path] = None
    LOCAL_STORAGE_PATH: Path = Field(default_factory=lambda: Path("storage"))

    # Bulk export
    EXPORT_COMPRESSION_LEVEL: int = Field(9, ge=0, le=9)
    EXPORT_INCLUDE_SKIPPED_MANIFEST: bool = False

    # Monitoring / tracing
    ENABLE_TRACING: bool = False
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[AnyUrl] = None
    OTEL_EXPORTER_OTLP_HEADERS: Optional[str] = None

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 60

    @field_validator("ALLOWED_ORIGINS", mode="before")
    def _split_origins(cls, value: str | List[str]) -> List[str]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache()
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()


# Singleton-style settings instance for modules that prefer direct access.
settings = get_settings()
