"""
Configuration settings management for MicroKV.

This module handles loading, validating, and saving configuration settings
from YAML files with support for environment variable overrides.

Configuration is loaded from ~/.microkv/config.yaml by default, with the
path overridable via the MICROKV_CONFIG environment variable.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

# Default workspace directory, also holds the config file
DEFAULT_WORKSPACE_DIR = Path.home() / ".microkv"
DEFAULT_CONFIG_FILE = DEFAULT_WORKSPACE_DIR / "config.yaml"

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class Settings:
    """
    Complete MicroKV configuration settings.

    Attributes:
        workspace_dir: Directory holding <name>.kv store files.
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR).
        auto_commit: Whether stores opened by the CLI persist every
            mutation immediately.
    """

    workspace_dir: str = str(DEFAULT_WORKSPACE_DIR)
    log_level: str = "WARNING"
    auto_commit: bool = False


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


def get_config_path() -> Path:
    """
    Get the configuration file path.

    Returns the path from MICROKV_CONFIG environment variable if set,
    otherwise returns the default path (~/.microkv/config.yaml).
    """
    env_path = os.environ.get("MICROKV_CONFIG")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_FILE


def load_config(config_path: Path | None = None) -> Settings:
    """
    Load configuration from YAML file.

    Reads configuration from the specified path (or default if not provided),
    applies environment variable overrides, and validates the configuration.
    A missing file is not an error; defaults are used.

    Args:
        config_path: Optional path to configuration file. If not provided,
                    uses MICROKV_CONFIG environment variable or default path.

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If the configuration file cannot be read or
                          contains invalid settings.
    """
    if config_path is None:
        config_path = get_config_path()

    settings = Settings()

    if config_path.exists():
        try:
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigurationError("Config file must contain a mapping")

        settings = _apply_config_data(settings, config_data)

    settings = _apply_environment_overrides(settings)

    _validate_config(settings)

    return settings


def save_config(settings: Settings, config_path: Path | None = None) -> None:
    """
    Save configuration to YAML file.

    Raises:
        ConfigurationError: If the configuration cannot be written.
    """
    if config_path is None:
        config_path = get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            yaml.safe_dump(
                _settings_to_dict(settings), f, default_flow_style=False, sort_keys=False
            )
    except OSError as e:
        raise ConfigurationError(f"Cannot write config file: {e}") from e


def _apply_config_data(settings: Settings, data: dict[str, Any]) -> Settings:
    """Apply configuration data from parsed YAML to settings."""
    microkv_data = data.get("microkv", {}) or {}

    if "workspace_dir" in microkv_data:
        settings.workspace_dir = str(Path(str(microkv_data["workspace_dir"])).expanduser())
    if "log_level" in microkv_data:
        settings.log_level = str(microkv_data["log_level"]).upper()
    if "auto_commit" in microkv_data:
        settings.auto_commit = bool(microkv_data["auto_commit"])

    return settings


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off", ""}:
        return False
    raise ConfigurationError(f"Invalid boolean value: {value!r}")


def _apply_environment_overrides(settings: Settings) -> Settings:
    """Apply environment variable overrides to settings."""
    env_map: dict[str, tuple[str, Callable[[str], Any]]] = {
        "MICROKV_WORKSPACE_DIR": ("workspace_dir", lambda x: str(Path(x).expanduser())),
        "MICROKV_LOG_LEVEL": ("log_level", lambda x: x.upper()),
        "MICROKV_AUTO_COMMIT": ("auto_commit", _parse_bool),
    }

    for env_var, (attr, converter) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            setattr(settings, attr, converter(value))

    return settings


def _validate_config(settings: Settings) -> None:
    """
    Validate configuration settings.

    Raises:
        ConfigurationError: If configuration is invalid.
    """
    if settings.log_level not in VALID_LOG_LEVELS:
        raise ConfigurationError(
            f"Invalid log_level: {settings.log_level}. "
            f"Must be one of: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )

    if not settings.workspace_dir:
        raise ConfigurationError("workspace_dir must not be empty")


def _settings_to_dict(settings: Settings) -> dict[str, Any]:
    """Convert Settings instance to dictionary for YAML serialization."""
    return {
        "microkv": {
            "workspace_dir": settings.workspace_dir,
            "log_level": settings.log_level,
            "auto_commit": settings.auto_commit,
        },
    }
