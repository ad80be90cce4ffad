"""
Pipeline configuration settings.

Retry schedule for model calls, blob retention and client polling.
The retry schedule must stay well inside a trigger invocation's wall-clock
budget: with the defaults the worst case sleeps about 31 seconds in total.

Dependencies: pydantic, pydantic_settings
System role: Tunables for triggers, janitor and client sync
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PipelineSettings(BaseSettings):
    """Settings for the processing pipeline."""

    model_config = SettingsConfigDict(
        env_prefix="STUDYSPARK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Retry wrapper
    retry_max_attempts: int = Field(default=5, description="Total attempts per model call")
    retry_base_delay: float = Field(default=2.0, description="First backoff delay in seconds")
    retry_multiplier: float = Field(default=2.0, description="Backoff growth factor")
    retry_max_delay: float = Field(default=30.0, description="Per-attempt delay cap in seconds")
    retry_jitter: float = Field(default=1.0, description="Upper bound of random jitter in seconds")

    # Enrichment tasks
    task_stale_after_seconds: float = Field(
        default=900.0,
        description="Open tasks untouched for this long no longer block new requests",
    )

    # Janitor
    retention_hours: float = Field(default=2.0, description="Blob retention window in hours")

    # Client sync
    subscription_poll_interval: float = Field(
        default=1.0,
        description="Seconds between record polls while subscribed",
    )

    default_summary_mode: str = Field(
        default="detailed",
        description="Summary mode when upload metadata carries none",
    )
