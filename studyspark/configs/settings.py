"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.
Provides dependency injection factory for FastAPI and the Lambda handlers.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from pydantic import Field

from studyspark.configs.base import BaseSettings
from studyspark.configs.database import DatabaseSettings
from studyspark.configs.gemini import GeminiSettings
from studyspark.configs.pipeline import PipelineSettings
from studyspark.configs.s3_documents import S3DocumentsSettings


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    # Resolved on each Settings() call, not at import
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    s3_documents: S3DocumentsSettings = Field(default_factory=S3DocumentsSettings)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns Settings instance, cached for dependency injection.
    Environment variables loaded once at startup.

    Returns:
        Settings: Application settings instance

    Usage:
        from studyspark.configs import get_settings
        settings = get_settings()
    """
    return Settings()
