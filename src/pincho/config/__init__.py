"""Configuration for the Pincho CLI.

Public API::

    from pincho.config import ConfigStore, load_settings

    settings = load_settings()
"""

from pincho.config.settings import LoggingSettings, PinchoSettings, build_settings
from pincho.config.store import (
    ConfigStore,
    ConfigValidationError,
    config_dir,
    config_path,
    load_settings,
)

__all__ = [
    "ConfigStore",
    "ConfigValidationError",
    "LoggingSettings",
    "PinchoSettings",
    "build_settings",
    "config_dir",
    "config_path",
    "load_settings",
]
