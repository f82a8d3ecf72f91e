"""
Configuration loader module for Notion to Ecomail synchronization.

Provides YAML-based configuration file loading with support for:
- Loading configuration from default or custom paths
- Graceful handling of missing configuration files
- Type and range validation of known keys
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from ecomail_sync.utils.paths import resolve_config_dir

# Default configuration file name
DEFAULT_CONFIG_FILE = "config.yaml"

# Environment variable naming an explicit configuration file
CONFIG_FILE_ENV_VAR = "ECOMAIL_SYNC_CONFIG_FILE"

# Keys accepted under the ``properties`` mapping
PROPERTY_KEYS = ("email", "name", "surname", "company", "tags", "intent", "intent_type")

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


# Known top-level keys and their expected types
VALID_KEYS: dict[str, type[Any] | tuple[type[Any], ...]] = {
    # CLI options
    "dry_run": bool,
    "verbose": bool,
    # Credentials (environment variables take precedence)
    "notion_token": str,
    "notion_database_id": str,
    "ecomail_api_key": str,
    "ecomail_list_id": (str, int),
    # Request options
    "request_timeout": (int, float),
    "max_attempts": int,
    "retry_delay": (int, float),
    "rate_limit_delay": (int, float),
    "max_retry_delay": (int, float),
    "pacing_delay": (int, float),
    "page_size": int,
    # Service options
    "ecomail_base_url": str,
    "notion_base_url": str,
    "notion_version": str,
    "trigger_autoresponders": bool,
    "resubscribe": bool,
    # Notion column mapping
    "properties": dict,
    "opt_in_values": list,
    "opt_out_values": list,
    # Logging options
    "log_dir": str,
    "log_retention_count": int,
}


def _type_name(expected: type[Any] | tuple[type[Any], ...]) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


class ConfigLoader:
    """
    YAML configuration file loader.

    Attributes:
        config_dir: Directory containing the configuration file
        config_file: Name of the configuration file

    Usage:
        loader = ConfigLoader()
        config = loader.load_and_validate()

        # Load from specific file
        config = loader.load_from_file("/path/to/config.yaml")
    """

    def __init__(
        self, config_dir: Path | None = None, config_file: str = DEFAULT_CONFIG_FILE
    ):
        """
        Initialize the configuration loader.

        Args:
            config_dir: Directory containing the configuration file.
                       Defaults to ~/.ecomail-sync/ or $ECOMAIL_SYNC_CONFIG_DIR
            config_file: Name of the configuration file (default: config.yaml)
        """
        self.config_dir = resolve_config_dir(config_dir)
        self.config_file = config_file

    def _get_config_path(self) -> Path:
        """Full path to the configuration file."""
        return self.config_dir / self.config_file

    def load(self) -> dict[str, Any]:
        """
        Load configuration from the configuration directory.

        $ECOMAIL_SYNC_CONFIG_FILE, when set, names the file to load instead.

        Returns:
            Configuration values, or an empty dict if the file doesn't exist

        Raises:
            ConfigurationError: If the file exists but cannot be parsed
        """
        env_file = os.environ.get(CONFIG_FILE_ENV_VAR)
        if env_file:
            return self.load_from_file(Path(env_file).expanduser())
        return self.load_from_file(self._get_config_path())

    def load_from_file(self, path: Path | str) -> dict[str, Any]:
        """
        Load configuration from a specific file.

        Args:
            path: Path to the configuration file

        Returns:
            Configuration values, or an empty dict if the file doesn't exist

        Raises:
            ConfigurationError: If the file exists but cannot be parsed
        """
        path = Path(path)

        if not path.exists():
            logger.debug(f"Configuration file not found: {path}")
            return {}

        try:
            with open(path, encoding="utf-8") as f:
                config = yaml.safe_load(f)

            if config is None:
                logger.debug(f"Configuration file is empty: {path}")
                return {}

            if not isinstance(config, dict):
                raise ConfigurationError(
                    f"Configuration file must contain a YAML dictionary, "
                    f"got {type(config).__name__}"
                )

            logger.debug(f"Loaded configuration from {path}")
            return config

        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse YAML configuration file: {e}"
            ) from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration file: {e}") from e

    def validate(self, config: dict[str, Any]) -> None:
        """
        Validate configuration types and ranges.

        Unknown keys are ignored with a warning.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not isinstance(config, dict):
            raise ConfigurationError(
                f"Configuration must be a dictionary, got {type(config).__name__}"
            )

        for key, value in config.items():
            if key not in VALID_KEYS:
                logger.warning(f"Ignoring unknown configuration key: {key}")
                continue
            expected = VALID_KEYS[key]
            # bool is an int subclass; reject it for numeric options
            if isinstance(value, bool) and bool not in (
                expected if isinstance(expected, tuple) else (expected,)
            ):
                raise ConfigurationError(
                    f"Invalid type for '{key}': expected {_type_name(expected)}, "
                    f"got bool"
                )
            if not isinstance(value, expected):
                raise ConfigurationError(
                    f"Invalid type for '{key}': expected {_type_name(expected)}, "
                    f"got {type(value).__name__}"
                )

        # Positive integer values
        for key in ("max_attempts", "page_size", "log_retention_count"):
            if key in config and config[key] < 1:
                raise ConfigurationError(f"{key} must be >= 1, got {config[key]}")

        if "page_size" in config and config["page_size"] > 100:
            raise ConfigurationError(
                f"page_size must be <= 100, got {config['page_size']}"
            )

        # Strictly positive delays
        for key in ("request_timeout", "max_retry_delay"):
            if key in config and config[key] <= 0:
                raise ConfigurationError(f"{key} must be > 0, got {config[key]}")

        # Non-negative delays
        for key in ("retry_delay", "rate_limit_delay", "pacing_delay"):
            if key in config and config[key] < 0:
                raise ConfigurationError(f"{key} must be >= 0, got {config[key]}")

        properties = config.get("properties") or {}
        for key, value in properties.items():
            if key not in PROPERTY_KEYS:
                raise ConfigurationError(
                    f"Unknown key under 'properties': '{key}'. "
                    f"Must be one of: {', '.join(PROPERTY_KEYS)}"
                )
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(
                    f"properties.{key} must be a non-empty string, got {value!r}"
                )
        if properties.get("intent_type", "select") not in ("select", "status"):
            raise ConfigurationError(
                f"properties.intent_type must be 'select' or 'status', "
                f"got {properties['intent_type']!r}"
            )

        for key in ("opt_in_values", "opt_out_values"):
            if key in config:
                values = config[key]
                if not values or not all(isinstance(v, str) and v for v in values):
                    raise ConfigurationError(
                        f"{key} must be a non-empty list of strings, got {values!r}"
                    )

    def load_and_validate(self) -> dict[str, Any]:
        """
        Load configuration and validate it.

        Returns:
            Validated configuration dictionary

        Raises:
            ConfigurationError: If configuration cannot be loaded or is invalid
        """
        config = self.load()
        if config:
            self.validate(config)
        return config
