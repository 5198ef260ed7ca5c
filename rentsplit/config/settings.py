"""Engine configuration from environment variables and .env file."""

import logging
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from rentsplit.models.allocation import AllocationMethod

logger = logging.getLogger(__name__)


class EngineSettings(BaseSettings):
    """Engine settings loaded from environment variables.

    Pydantic automatically loads values from:
    1. OS environment variables prefixed with RENTSPLIT_ (at instantiation time)
    2. .env file in the working directory
    """

    model_config = SettingsConfigDict(
        env_prefix="RENTSPLIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    rate_tables_path: str | None = Field(
        default=None, description="Rate table JSON file (default: packaged tables)"
    )
    default_method: AllocationMethod = Field(
        default=AllocationMethod.SIMPLE_AVERAGE, description="Allocation method when none given"
    )
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/rentsplit.log", description="Log file path")


_settings_instance: Optional[EngineSettings] = None


def get_settings() -> EngineSettings:
    """Get or create the settings instance.

    Lazy-loaded so that environment variables set by the host application
    before first use are picked up.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = EngineSettings()
        logger.debug("Loaded engine settings: %s", _settings_instance)
    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings_instance
    _settings_instance = None


__all__ = ["EngineSettings", "get_settings", "reset_settings"]
