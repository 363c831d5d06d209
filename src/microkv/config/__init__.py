"""
Configuration management for MicroKV.

This module handles loading, validating, and saving configuration settings
for the command-line front end and default store locations.
"""

from microkv.config.settings import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_WORKSPACE_DIR,
    ConfigurationError,
    Settings,
    get_config_path,
    load_config,
    save_config,
)

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_WORKSPACE_DIR",
    "Settings",
    "ConfigurationError",
    "get_config_path",
    "load_config",
    "save_config",
]
