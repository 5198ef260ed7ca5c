"""Engine configuration and packaged rate table data."""

from pathlib import Path

from rentsplit.config.settings import EngineSettings, get_settings, reset_settings

DEFAULT_RATE_TABLES_PATH = Path(__file__).parent / "rate_tables.json"

__all__ = ["DEFAULT_RATE_TABLES_PATH", "EngineSettings", "get_settings", "reset_settings"]
