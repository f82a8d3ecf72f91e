"""CLI package for ecomail_sync."""

from ecomail_sync.cli.main import (
    EXIT_CONFIG_ERROR,
    EXIT_FAILURES,
    EXIT_FATAL,
    EXIT_OK,
    cli,
    get_config_dir,
)

__all__ = [
    "EXIT_OK",
    "EXIT_FAILURES",
    "EXIT_CONFIG_ERROR",
    "EXIT_FATAL",
    "cli",
    "get_config_dir",
]
