"""
Settings master configuration and environment loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

from dotenv import find_dotenv, load_dotenv

from .sections import AuthConfig, EmailConfig, LoggingConfig, ServerConfig, StreamConfig


@dataclass
class Settings:
    """
    Master configuration for a blockops process.

    Aggregates all sections into one object that can be loaded from
    environment variables or constructed programmatically in tests.
    """

    server: ServerConfig = field(default_factory=ServerConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, prefix: str = "BLOCKOPS_") -> Settings:
        """
        Load settings from environment variables.

        Example:
            BLOCKOPS_JWT_SECRET=...
            BLOCKOPS_RESEND_API_KEY=re_...
            BLOCKOPS_SEND_INTERVAL_MS=250
        """
        server: dict[str, Any] = {}
        if host := os.getenv(f"{prefix}HOST"):
            server["host"] = host
        if port := os.getenv(f"{prefix}PORT"):
            server["port"] = int(port)
        if hosted_at := os.getenv(f"{prefix}HOSTED_AT"):
            server["hosted_at"] = hosted_at
        if org_name := os.getenv(f"{prefix}ORG_NAME"):
            server["org_name"] = org_name

        auth: dict[str, Any] = {}
        if secret := os.getenv(f"{prefix}JWT_SECRET"):
            auth["jwt_secret"] = secret
        if ttl := os.getenv(f"{prefix}JWT_TTL_DAYS"):
            auth["token_ttl_days"] = int(ttl)
        if sender := os.getenv(f"{prefix}TOKEN_SENDER"):
            auth["token_sender"] = sender

        email: dict[str, Any] = {}
        if interval := os.getenv(f"{prefix}SEND_INTERVAL_MS"):
            email["send_interval_ms"] = int(interval)
        if key := os.getenv(f"{prefix}RESEND_API_KEY"):
            email["resend_api_key"] = key
        if root := os.getenv(f"{prefix}RESEND_API_ROOT"):
            email["resend_api_root"] = root

        stream: dict[str, Any] = {}
        if token := os.getenv(f"{prefix}S2_ACCESS_TOKEN"):
            stream["access_token"] = token
        if basin := os.getenv(f"{prefix}S2_BASIN"):
            stream["basin"] = basin
        if endpoint := os.getenv(f"{prefix}S2_ENDPOINT"):
            stream["endpoint"] = endpoint

        log: dict[str, Any] = {}
        if level := os.getenv(f"{prefix}LOG_LEVEL"):
            log["level"] = level.upper()
        if log_format := os.getenv(f"{prefix}LOG_FORMAT"):
            log["format"] = log_format.lower()

        return cls(
            server=ServerConfig(**server),
            auth=AuthConfig(**auth),
            email=EmailConfig(**email),
            stream=StreamConfig(**stream),
            logging=LoggingConfig(**log),
        )


def load_env(path: str | None = None, *, override: bool = False) -> bool:
    """
    Load environment variables from a .env file.

    Args:
        path: Optional path to a .env file. If not provided, uses find_dotenv().
        override: Whether to override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    env_path = path or find_dotenv(usecwd=True)
    if not env_path:
        return False
    return load_dotenv(env_path, override=override)


def get_settings(*, prefix: str = "BLOCKOPS_", dotenv: bool = True) -> Settings:
    if dotenv:
        load_env()
    return Settings.from_env(prefix)


__all__ = ["Settings", "get_settings", "load_env"]
