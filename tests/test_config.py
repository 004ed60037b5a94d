"""Tests for configuration module."""

from ssh_fixture.config import (
    FINGERPRINT,
    HOSTKEY,
    ClientConfig,
    FixtureConfig,
    LoggingConfig,
    ServerSettings,
)


def test_fixture_config_defaults():
    """Test fixture config default values."""
    config = FixtureConfig.from_env()
    assert config.auto_start
    assert config.hostkey == HOSTKEY
    assert config.fingerprint == FINGERPRINT
    assert config.server.host == "127.0.0.1"
    assert config.server.port == 0


def test_client_config_defaults():
    """Test client config default values."""
    config = ClientConfig()
    assert config.connect_timeout == 10.0
    assert config.keepalive_interval == 0
    assert not config.compress


def test_env_overrides(monkeypatch):
    """Test settings are read from environment variables."""
    monkeypatch.setenv("SSH_FIXTURE_AUTO_START", "false")
    monkeypatch.setenv("SSH_FIXTURE_SERVER_BACKLOG", "7")
    monkeypatch.setenv("SSH_FIXTURE_CLIENT_COMPRESS", "true")

    config = FixtureConfig.from_env()
    assert not config.auto_start
    assert config.server.backlog == 7
    assert config.client.compress


def test_log_level_normalized():
    """Test log level names are upper-cased."""
    assert LoggingConfig(level=" debug ").level == "DEBUG"


def test_default_config_is_valid():
    """Test the shipped configuration has no issues."""
    assert FixtureConfig.from_env().validate_config() == []


def test_config_validation():
    """Test config validation reports every problem."""
    config = FixtureConfig(
        hostkey="missing.pem",
        fingerprint="not-a-fingerprint",
        server=ServerSettings(port=22),
    )

    issues = config.validate_config()
    assert "Host key resource not found: missing.pem" in issues
    assert any("fingerprint" in issue for issue in issues)
    assert "Port 22 requires root privileges" in issues
