"""Configuration module for the echo server."""

from .echo import EchoSettings
from .logging import LoggingSettings
from .server import ServerSettings
from .settings import ConfigurationError, Settings, get_settings


__all__ = [
    "ConfigurationError",
    "EchoSettings",
    "LoggingSettings",
    "ServerSettings",
    "Settings",
    "get_settings",
]
