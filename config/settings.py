"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # STORAGE
    # ===================
    storage_backend: str = Field(
        default="file",
        pattern="^(file|memory)$",
        description="Key-value backend for catalog, staged set and settings"
    )
    storage_dir: str = Field(
        default=".inventory_data",
        description="Directory holding one JSON file per storage key"
    )

    # ===================
    # CSV
    # ===================
    export_filename: str = Field(
        default="new_inventory.csv",
        min_length=1,
        description="Download name for the exported staged set"
    )
    max_upload_mb: int = Field(
        default=20,
        ge=1,
        le=500,
        description="Largest accepted CSV upload in megabytes"
    )

    # ===================
    # PRINT QUEUE
    # ===================
    print_queue_url: Optional[str] = Field(
        None,
        description="Endpoint receiving {sku, shelf_id} print items"
    )
    print_queue_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="Timeout for print queue requests"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def print_queue_configured(self) -> bool:
        """Check if the print queue endpoint is set."""
        return bool(self.print_queue_url)

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
