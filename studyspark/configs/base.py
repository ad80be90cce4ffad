"""
Base configuration settings.

Fields shared by every StudySpark process (API, Lambda handlers, janitor),
read from the environment or a local .env file.

Dependencies: pydantic_settings
System role: Foundation for all configuration classes
"""

from pydantic import Field
from pydantic_settings import BaseSettings as PydanticBaseSettings, SettingsConfigDict


class BaseSettings(PydanticBaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field(default="development", description="development, staging or production")
    log_level: str = Field(default="INFO", description="Root log level for configure_logging()")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API (JSON list in CORS_ORIGINS)",
    )
