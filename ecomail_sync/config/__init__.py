"""
ecomail_sync.config - Configuration management module

Contains configuration loading, validation, and default settings.
"""

from ecomail_sync.config.loader import ConfigLoader, ConfigurationError
from ecomail_sync.config.settings import Settings, build_property_map

__all__ = [
    "ConfigLoader",
    "ConfigurationError",
    "Settings",
    "build_property_map",
]
