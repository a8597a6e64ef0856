"""
Module: settings

Purpose: Centralized configuration management for the risk chart engine.

Key Functions:
- get_settings: Load settings from environment variables
- Settings: Pydantic settings model with validation

Architecture Notes:
- Uses pydantic-settings for type-safe configuration
- All settings have sensible defaults
- Environment variables (prefix RISKCHART_) override defaults
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RISKCHART_",
        env_file=".env",
        extra="ignore",
    )

    # Data
    data_path: Path = Path("data/financial_risk_assessment.csv")

    # Interaction timing
    resize_debounce_ms: Annotated[int, Field(gt=0)] = 200
    age_cycle_interval_ms: Annotated[int, Field(gt=0)] = 3000

    # Chart geometry
    hexbin_radius: Annotated[float, Field(gt=0)] = 10.0
    default_width: Annotated[int, Field(gt=0)] = 800
    default_height: Annotated[int, Field(gt=0)] = 500

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Settings loaded once per process."""
    return Settings()
