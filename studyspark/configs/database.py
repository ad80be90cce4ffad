"""
Database configuration settings.

Manages the connection parameters for the processing record store.
PostgreSQL (asyncpg) in deployed environments, SQLite (aiosqlite) locally.

Dependencies: pydantic, pydantic_settings
System role: Database connection configuration for the record store
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict



class DatabaseSettings(BaseSettings):
    """Record store database configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="POSTGRES_",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="postgres", description="PostgreSQL user")
    password: str = Field(default="postgres", description="PostgreSQL password")
    db: str = Field(default="studyspark", description="PostgreSQL database name")

    url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "POSTGRES_URL"),
        description="Full SQLAlchemy URL override (e.g. sqlite+aiosqlite:///./studyspark.db)",
    )

    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum overflow connections")
    pool_timeout: int = Field(default=30, description="Connection pool timeout in seconds")
    echo_sql: bool = Field(default=False, description="Echo SQL statements to logs")

    sslmode: str = Field(default="require", description="SSL mode for RDS connections")

    @property
    def async_database_url(self) -> str:
        """
        Construct async connection URL.

        An explicit url override wins; postgres:// style URLs are rewritten to
        the asyncpg driver.

        Returns:
            str: SQLAlchemy async-compatible database URL
        """
        if self.url:
            if self.url.startswith("postgres://"):
                return self.url.replace("postgres://", "postgresql+asyncpg://", 1)
            if self.url.startswith("postgresql://"):
                return self.url.replace("postgresql://", "postgresql+asyncpg://", 1)
            return self.url

        ssl_param = "ssl=require" if self.sslmode == "require" else ""
        return (
            f"postgresql+asyncpg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.db}?{ssl_param}"
        )

    @property
    def is_sqlite(self) -> bool:
        """Whether the configured backend is SQLite (no pool tuning)."""
        return self.async_database_url.startswith("sqlite")
