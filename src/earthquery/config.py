"""
Configuration management for LG Earth Query.

Defaults ship in ``config_defaults.json`` next to this module.  A deployment
overlays them with its own JSON file, and callers (tests, the CLI) may pass
explicit overrides on top of that.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from . import plugin_logger

logger = plugin_logger(__name__)

DEFAULTS_FILE_NAME = "config_defaults.json"

# Fallback defaults used if the external defaults file cannot be read.
_FALLBACK_DEFAULTS = {
    "enabled": True,
    "debug": False,
    "query_variant": "query",
    "lg.earth.query.location": "",
    "lg.earth.querytxt.location": "",
    "query_write_retries": 5,
    "query_write_retry_interval": 1.0,
    "query_orphan_max_age": 30.0,
}


def _load_defaults_from_file() -> Dict[str, Any]:
    defaults = dict(_FALLBACK_DEFAULTS)
    defaults_path = Path(__file__).resolve().with_name(DEFAULTS_FILE_NAME)
    try:
        raw = defaults_path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(
            "Could not read defaults file '%s': %s; using built-in defaults",
            defaults_path,
            e,
        )
        return defaults

    try:
        loaded = json.loads(raw)
    except ValueError as e:
        logger.warning(
            "Failed parsing defaults file '%s': %s; using built-in defaults",
            defaults_path,
            e,
        )
        return defaults

    if not isinstance(loaded, dict):
        logger.warning(
            "Defaults file '%s' is not a JSON object; using built-in defaults",
            defaults_path,
        )
        return defaults

    for key, value in loaded.items():
        if isinstance(key, str):
            defaults[key] = value
    return defaults


# Defaults for all configuration keys. Loaded from config_defaults.json.
DEFAULTS = _load_defaults_from_file()


class Config:
    """
    Manages configuration for the query publisher.

    Values are resolved from explicit overrides, then the deployment
    configuration file, then DEFAULTS.
    """

    def __init__(self, config_file: Optional[str] = None, **overrides: Any):
        """
        Initialize configuration.

        Args:
            config_file: Path to a JSON configuration file. Missing files are
                         ignored so a fresh install runs on defaults.
            overrides: Individual key/value pairs that win over the file.
        """
        self.config: Dict[str, Any] = dict(DEFAULTS)
        if config_file and Path(config_file).exists():
            self.load_from_file(config_file)
        self.config.update(overrides)

    def load_from_file(self, config_file: str) -> bool:
        """
        Load configuration from a JSON file.

        Args:
            config_file: Path to configuration JSON file.

        Returns:
            True if the file was applied, False otherwise.
        """
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                custom_config = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load configuration from {config_file}: {e}")
            return False

        if not isinstance(custom_config, dict):
            logger.error(f"Configuration file {config_file} must contain a JSON object")
            return False

        self.config.update(custom_config)
        logger.info(f"Loaded configuration from {config_file}")
        return True

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key.

        Args:
            key: Configuration key name.
            default: Returned when the key is unknown (DEFAULTS are used if not provided).
        """
        if default is None:
            default = DEFAULTS.get(key)
        return self.config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value."""
        self.config[key] = value
        logger.debug(f"Configuration '{key}' set to {value}")

    def delete(self, key: str) -> None:
        """Remove an override so the default applies again."""
        self.config.pop(key, None)
        if key in DEFAULTS:
            self.config[key] = DEFAULTS[key]

    def __getitem__(self, key: str) -> Any:
        """Allow dictionary-style access."""
        return self.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        """Allow dictionary-style assignment."""
        self.set(key, value)
