"""Configuration module for keyman."""

from .keys import KeySettings
from .logging import LoggingSettings
from .settings import ConfigurationError, Settings, get_settings


__all__ = [
    "ConfigurationError",
    "KeySettings",
    "LoggingSettings",
    "Settings",
    "get_settings",
]
