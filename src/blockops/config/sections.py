"""
Configuration sections.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]


@dataclass
class ServerConfig:
    """HTTP listener and public naming."""

    host: str = "0.0.0.0"
    port: int = 3000
    # Public host the generated client script calls back to, e.g. "blocks.example.com".
    hosted_at: str | None = None
    org_name: str = "blockops"

    def __post_init__(self):
        if self.port < 1 or self.port > 65535:
            raise ValueError("port must be between 1 and 65535")
        if not self.org_name.strip():
            raise ValueError("org_name cannot be empty")


@dataclass
class AuthConfig:
    """Bearer credential verification and issuance."""

    jwt_secret: str | None = None
    algorithm: str = "HS256"
    token_ttl_days: int = 365
    token_sender: str | None = None

    def __post_init__(self):
        if self.token_ttl_days <= 0:
            raise ValueError("token_ttl_days must be positive")
        if self.algorithm not in ("HS256", "HS384", "HS512"):
            raise ValueError(f"Unsupported JWT algorithm: {self.algorithm}")
        if self.token_sender and "@" not in self.token_sender:
            raise ValueError("token_sender must be an email address")


@dataclass
class EmailConfig:
    """Outbound email queue and the Resend delivery profile."""

    send_interval_ms: int = 100
    resend_api_key: str | None = None
    resend_api_root: str = "api.resend.com"
    timeout_seconds: float = 30.0

    def __post_init__(self):
        if self.send_interval_ms < 0:
            raise ValueError("send_interval_ms cannot be negative")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")


@dataclass
class StreamConfig:
    """Durable stream store (S2)."""

    access_token: str | None = None
    basin: str | None = None
    # Defaults to https://{basin}.b.aws.s2.dev/v1 when unset.
    endpoint: str | None = None
    timeout_seconds: float = 30.0

    def __post_init__(self):
        if self.endpoint and not self.endpoint.startswith(("http://", "https://")):
            raise ValueError("stream endpoint must be a valid HTTP(S) URL")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

    @property
    def enabled(self) -> bool:
        return bool(self.access_token and self.basin)


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: LogLevel = "INFO"
    format: LogFormat = "text"

    def __post_init__(self):
        valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if self.level not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}. Must be one of {valid_levels}")
        valid_formats = ("text", "json")
        if self.format not in valid_formats:
            raise ValueError(f"Invalid log format: {self.format}. Must be one of {valid_formats}")


__all__ = ["LogLevel", "LogFormat", "ServerConfig", "AuthConfig", "EmailConfig", "StreamConfig", "LoggingConfig"]
