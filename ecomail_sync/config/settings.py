"""
Validated runtime settings.

Settings is the first phase of startup: it merges the YAML configuration
with the environment and fails fast, naming every missing credential,
before any HTTP client is constructed. The CLI then builds the clients
and engines from a Settings value.

Credentials are read from environment variables first, then from the
configuration file:

    NOTION_TOKEN          notion_token
    NOTION_DATABASE_ID    notion_database_id
    ECOMAIL_API_KEY       ecomail_api_key
    ECOMAIL_LIST_ID       ecomail_list_id
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ecomail_sync.api.ecomail_api import DEFAULT_ECOMAIL_BASE_URL
from ecomail_sync.api.http_client import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_RETRY_DELAY,
    DEFAULT_RATE_LIMIT_DELAY,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
)
from ecomail_sync.api.notion_api import (
    DEFAULT_NOTION_BASE_URL,
    DEFAULT_NOTION_VERSION,
    DEFAULT_PAGE_SIZE,
)
from ecomail_sync.config.loader import ConfigurationError
from ecomail_sync.sync.contact import PropertyMap
from ecomail_sync.sync.engine import DEFAULT_PACING_DELAY

DEFAULT_LOG_RETENTION_COUNT = 10

# (environment variable, config key) for each required credential
CREDENTIALS = (
    ("NOTION_TOKEN", "notion_token"),
    ("NOTION_DATABASE_ID", "notion_database_id"),
    ("ECOMAIL_API_KEY", "ecomail_api_key"),
    ("ECOMAIL_LIST_ID", "ecomail_list_id"),
)


def build_property_map(config: Mapping[str, Any]) -> PropertyMap:
    """Build the Notion column mapping from ``properties`` and the value lists."""
    properties = dict(config.get("properties") or {})
    kwargs: dict[str, Any] = {key: value.strip() for key, value in properties.items()}

    if config.get("opt_in_values"):
        kwargs["opt_in_values"] = tuple(config["opt_in_values"])
    if config.get("opt_out_values"):
        kwargs["opt_out_values"] = tuple(config["opt_out_values"])

    return PropertyMap(**kwargs)


@dataclass(frozen=True)
class Settings:
    """
    Everything needed to run a sync, validated.

    Usage:
        config = ConfigLoader(config_dir).load_and_validate()
        settings = Settings.from_sources(config)  # may raise ConfigurationError
    """

    notion_token: str
    notion_database_id: str
    ecomail_api_key: str
    ecomail_list_id: str
    request_timeout: float = DEFAULT_TIMEOUT
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY
    rate_limit_delay: float = DEFAULT_RATE_LIMIT_DELAY
    max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY
    pacing_delay: float = DEFAULT_PACING_DELAY
    page_size: int = DEFAULT_PAGE_SIZE
    ecomail_base_url: str = DEFAULT_ECOMAIL_BASE_URL
    notion_base_url: str = DEFAULT_NOTION_BASE_URL
    notion_version: str = DEFAULT_NOTION_VERSION
    trigger_autoresponders: bool = True
    resubscribe: bool = True
    dry_run: bool = False
    log_dir: str | None = None
    log_retention_count: int = DEFAULT_LOG_RETENTION_COUNT
    property_map: PropertyMap = field(default_factory=PropertyMap)

    @classmethod
    def from_sources(
        cls,
        file_config: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> Settings:
        """
        Merge validated file configuration with the environment.

        Args:
            file_config: Output of ConfigLoader.load_and_validate()
            environ: Environment mapping (defaults to os.environ)

        Returns:
            Frozen Settings

        Raises:
            ConfigurationError: If any credential is missing; the message
                names all of them
        """
        config = dict(file_config or {})
        env = os.environ if environ is None else environ

        credentials: dict[str, str] = {}
        missing = []
        for env_var, key in CREDENTIALS:
            value = env.get(env_var) or config.get(key)
            value = str(value).strip() if value is not None else ""
            if not value:
                missing.append(env_var)
            credentials[key] = value

        if missing:
            raise ConfigurationError(
                f"Missing required settings: {', '.join(missing)}. "
                "Set them as environment variables or in the configuration file."
            )

        optional = {
            key: config[key]
            for key in (
                "request_timeout",
                "max_attempts",
                "retry_delay",
                "rate_limit_delay",
                "max_retry_delay",
                "pacing_delay",
                "page_size",
                "ecomail_base_url",
                "notion_base_url",
                "notion_version",
                "trigger_autoresponders",
                "resubscribe",
                "dry_run",
                "log_dir",
                "log_retention_count",
            )
            if key in config
        }

        return cls(
            **credentials, **optional, property_map=build_property_map(config)
        )

    def __repr__(self) -> str:
        # Keep secrets out of logs and tracebacks
        return (
            f"Settings(notion_database_id={self.notion_database_id!r}, "
            f"ecomail_list_id={self.ecomail_list_id!r}, dry_run={self.dry_run})"
        )
