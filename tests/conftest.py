"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from ssh_fixture.config import FixtureConfig

pytest_plugins = ["ssh_fixture.pytest_plugin"]


@pytest.fixture
def test_config() -> FixtureConfig:
    """Create test configuration."""
    config = FixtureConfig.from_env()
    config.server.host = "127.0.0.1"
    config.server.port = 0
    config.auto_start = True
    return config


@pytest.fixture
def authenticated_client(ssh_client):
    """Default client logged in as alice."""
    ssh_client.auth_password("alice", "alice")
    return ssh_client


@pytest.fixture
def sftp_root(tmp_path: Path) -> Path:
    """Create temporary directory for SFTP transfers."""
    root = tmp_path / "sftp"
    root.mkdir()
    return root
