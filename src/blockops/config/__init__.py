"""
Configuration for blockops.

Dataclass sections validated on construction, loaded from prefixed
environment variables and optional .env files.
"""

from .sections import AuthConfig, EmailConfig, LogFormat, LoggingConfig, LogLevel, ServerConfig, StreamConfig
from .settings import Settings, get_settings, load_env

__all__ = [
    "LogLevel",
    "LogFormat",
    "ServerConfig",
    "AuthConfig",
    "EmailConfig",
    "StreamConfig",
    "LoggingConfig",
    "Settings",
    "get_settings",
    "load_env",
]
