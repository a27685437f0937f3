from .manager import Settings, load_settings
from .schema import DEFAULT_SETTINGS, SETTINGS_SCHEMA

__all__ = ["DEFAULT_SETTINGS", "SETTINGS_SCHEMA", "Settings", "load_settings"]
