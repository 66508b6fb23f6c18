"""
Silver Layer Load
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
"""

from functools import lru_cache
from typing import Optional
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Destination Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="datawarehouse", alias="database", description="Database name")
    user: str = Field(default="dwh", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    url: Optional[str] = Field(default=None, description="Full SQLAlchemy URL (overrides host/port)")
    echo: bool = Field(default=False, description="Echo SQL queries")

    @property
    def sync_url(self) -> str:
        """Sync database URL for psycopg2"""
        if self.url:
            return self.url
        return f"postgresql+psycopg2://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class DataLakeSettings(BaseSettings):
    """Raw and Curated Zone Locations"""

    model_config = SettingsConfigDict(env_prefix="DATA_")

    raw_path: str = Field(default="./datasets", description="Root of the raw source extracts")
    curated_path: str = Field(default="./data/curated", description="Curated zone path (parquet backend)")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")


class DataQualitySettings(BaseSettings):
    """Data Quality Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    enable_data_quality_checks: bool = Field(
        default=True,
        alias="ENABLE_DATA_QUALITY_CHECKS",
        description="Run output quality checks after each table transform"
    )


class PipelineSettings(BaseSettings):
    """Silver Load Pipeline Configuration"""

    model_config = SettingsConfigDict(env_prefix="SILVER_")

    store_backend: str = Field(default="database", description="Destination store: database or parquet")
    chunk_size: int = Field(default=1000, description="Rows per INSERT batch")
    create_tables: bool = Field(default=True, description="Create silver tables before loading")

    @field_validator("store_backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate store backend value"""
        allowed = ["database", "parquet"]
        if v.lower() not in allowed:
            raise ValueError(f"Store backend must be one of: {allowed}")
        return v.lower()


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="dwh-silver-load", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    data_lake: DataLakeSettings = Field(default_factory=DataLakeSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    data_quality: DataQualitySettings = Field(default_factory=DataQualitySettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()


# Convenience function for accessing settings
settings = get_settings()
