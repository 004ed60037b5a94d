"""Pytest fixtures exposing an ephemeral SSH server.

Enable with ``pytest_plugins = ["ssh_fixture.pytest_plugin"]`` in a
top-level ``conftest.py``.
"""

from typing import Iterator

import pytest

from ssh_fixture.client import SSHClient
from ssh_fixture.fixture import SshFixture


@pytest.fixture
def ssh_fixture() -> Iterator[SshFixture]:
    """A started SSH fixture, torn down after the test."""
    with SshFixture(auto_start=True) as fixture:
        yield fixture


@pytest.fixture
def ssh_fixture_manual() -> Iterator[SshFixture]:
    """An SSH fixture the test starts itself; always torn down."""
    with SshFixture(auto_start=False) as fixture:
        yield fixture


@pytest.fixture
def ssh_client(ssh_fixture: SshFixture) -> SSHClient:
    """The fixture's default client, connected but not authenticated."""
    return ssh_fixture.setup_connected_default_client()
