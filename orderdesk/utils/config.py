"""
Configuration management using pydantic-settings

Loads configuration from environment variables and .env file
"""

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database Configuration
    DB_HOST: str = Field(default="localhost", description="Database host")
    DB_PORT: int = Field(default=5432, description="Database port")
    DB_NAME: str = Field(default="orderdesk", description="Database name")
    DB_USER: str = Field(default="orderdesk", description="Database user")
    DB_PASSWORD: str = Field(default="orderdesk", description="Database password")
    DB_MIN_CONNECTIONS: int = Field(default=1, description="Minimum pooled connections")
    DB_MAX_CONNECTIONS: int = Field(default=10, description="Maximum pooled connections")
    CHANGE_CHANNEL: str = Field(
        default="orders_changed",
        description="LISTEN/NOTIFY channel raised whenever an order row changes"
    )

    # Application Settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    # Order Rules
    CUSTOMER_NAME_MAX_LENGTH: int = Field(default=32, description="Maximum customer name length")
    NOTE_MAX_LENGTH: int = Field(default=128, description="Maximum order note length")
    DEFAULT_PRIORITY: str = Field(default="medium", description="Priority given to new orders")
    PAST_DUE_DAYS: int = Field(
        default=7,
        description="Days after creation when an open order counts as past due"
    )

    # Export
    EXPORT_FILENAME_PREFIX: str = Field(default="orders", description="CSV export file name prefix")


# Global settings instance
settings = Settings()


def configure_logging(level: str = None):
    """Apply LOG_LEVEL to the root logger"""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
