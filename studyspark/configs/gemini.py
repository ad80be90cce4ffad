"""
Gemini model provider configuration.

Dependencies: pydantic_settings
System role: Generative model configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Google Gemini configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: str = Field(default="", description="Gemini API key")
    model_id: str = Field(
        default="gemini-2.0-flash",
        description="Model used for summaries, flashcards and quizzes",
    )
    temperature: float = Field(default=0.3, description="Sampling temperature")
