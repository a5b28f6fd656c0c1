"""
Tests for the configuration system.
"""

import pytest

from blockops.config import (
    AuthConfig,
    EmailConfig,
    LoggingConfig,
    ServerConfig,
    Settings,
    StreamConfig,
    get_settings,
    load_env,
)

ENV_NAMES = (
    "HOST",
    "PORT",
    "HOSTED_AT",
    "ORG_NAME",
    "JWT_SECRET",
    "JWT_TTL_DAYS",
    "TOKEN_SENDER",
    "SEND_INTERVAL_MS",
    "RESEND_API_KEY",
    "RESEND_API_ROOT",
    "S2_ACCESS_TOKEN",
    "S2_BASIN",
    "S2_ENDPOINT",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # setenv first so load_dotenv writes are undone on teardown
    for name in ENV_NAMES:
        monkeypatch.setenv(f"BLOCKOPS_{name}", "")
        monkeypatch.delenv(f"BLOCKOPS_{name}")


class TestSections:
    """Test section defaults and validation."""

    def test_defaults(self):
        settings = Settings()

        assert settings.server.port == 3000
        assert settings.server.org_name == "blockops"
        assert settings.auth.jwt_secret is None
        assert settings.auth.token_ttl_days == 365
        assert settings.email.send_interval_ms == 100
        assert settings.email.resend_api_root == "api.resend.com"
        assert not settings.stream.enabled
        assert settings.logging.level == "INFO"

    def test_server_validation(self):
        with pytest.raises(ValueError, match="port must be between"):
            ServerConfig(port=0)
        with pytest.raises(ValueError, match="org_name cannot be empty"):
            ServerConfig(org_name="  ")

    def test_auth_validation(self):
        with pytest.raises(ValueError, match="token_ttl_days must be positive"):
            AuthConfig(token_ttl_days=0)
        with pytest.raises(ValueError, match="Unsupported JWT algorithm"):
            AuthConfig(algorithm="RS256")
        with pytest.raises(ValueError, match="token_sender must be an email address"):
            AuthConfig(token_sender="nobody")

    def test_email_validation(self):
        with pytest.raises(ValueError, match="send_interval_ms cannot be negative"):
            EmailConfig(send_interval_ms=-1)

    def test_stream_config(self):
        assert StreamConfig(access_token="t", basin="b").enabled
        assert not StreamConfig(access_token="t").enabled
        with pytest.raises(ValueError, match="valid HTTP"):
            StreamConfig(endpoint="ftp://s2")

    def test_logging_validation(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            LoggingConfig(level="LOUD")
        with pytest.raises(ValueError, match="Invalid log format"):
            LoggingConfig(format="xml")


class TestFromEnv:
    """Test loading from environment variables."""

    def test_reads_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("BLOCKOPS_PORT", "8080")
        monkeypatch.setenv("BLOCKOPS_HOSTED_AT", "blocks.example.com")
        monkeypatch.setenv("BLOCKOPS_JWT_SECRET", "s3cret")
        monkeypatch.setenv("BLOCKOPS_SEND_INTERVAL_MS", "250")
        monkeypatch.setenv("BLOCKOPS_S2_ACCESS_TOKEN", "tok")
        monkeypatch.setenv("BLOCKOPS_S2_BASIN", "demo-basin")
        monkeypatch.setenv("BLOCKOPS_LOG_LEVEL", "debug")
        monkeypatch.setenv("BLOCKOPS_LOG_FORMAT", "JSON")

        settings = Settings.from_env()

        assert settings.server.port == 8080
        assert settings.server.hosted_at == "blocks.example.com"
        assert settings.auth.jwt_secret == "s3cret"
        assert settings.email.send_interval_ms == 250
        assert settings.stream.enabled
        assert settings.logging.level == "DEBUG"
        assert settings.logging.format == "json"

    def test_custom_prefix(self, monkeypatch):
        monkeypatch.setenv("ACME_ORG_NAME", "acme")
        assert Settings.from_env("ACME_").server.org_name == "acme"

    def test_invalid_value_raises(self, monkeypatch):
        monkeypatch.setenv("BLOCKOPS_PORT", "70000")
        with pytest.raises(ValueError):
            Settings.from_env()


class TestDotenv:
    def test_load_env_from_path(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("BLOCKOPS_ORG_NAME=fromfile\n")

        assert load_env(str(env_file)) is True
        assert Settings.from_env().server.org_name == "fromfile"

    def test_existing_variables_win(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("BLOCKOPS_ORG_NAME=fromfile\n")
        monkeypatch.setenv("BLOCKOPS_ORG_NAME", "fromenv")

        load_env(str(env_file))

        assert Settings.from_env().server.org_name == "fromenv"

    def test_get_settings_without_dotenv(self, monkeypatch):
        monkeypatch.setenv("BLOCKOPS_ORG_NAME", "plain")
        assert get_settings(dotenv=False).server.org_name == "plain"
