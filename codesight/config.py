"""Configuration management for the synthesis pipeline."""

import os
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when pipeline configuration is invalid.

    This is the only error class surfaced to callers before any session is
    processed: bad weights, unknown locator kinds, broken patterns.
    """

    pass


class Settings(BaseSettings):
    """Pipeline settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CODESIGHT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Filtering
    min_quality_threshold: float = Field(60.0, description="Minimum aggregate quality (0-100) for emission")

    # Segmentation
    max_lookahead: int = Field(15, description="Interactions without a trigger before an open flow is closed")

    # Selectors
    max_fallbacks: int = Field(3, description="Maximum fallback selectors kept per interaction")

    # Intent
    compare_min_products: int = Field(3, description="Distinct product pages needed before compare intent scores")

    # Execution
    session_time_budget_seconds: Optional[float] = Field(30.0, description="Per-session time budget, None disables")
    max_workers: int = Field(
        default_factory=lambda: os.cpu_count() or 1,
        description="Concurrent session workers",
    )

    # Pattern tables (optional YAML override)
    pipeline_config_path: Optional[str] = Field(None, description="YAML file overriding pattern tables and weights")

    # Logging
    log_level: str = Field("INFO", description="Log level")
    log_json: bool = Field(False, description="Render logs as JSON lines")


def get_settings() -> Settings:
    """Get pipeline settings."""
    return Settings()
