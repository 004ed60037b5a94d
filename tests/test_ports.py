"""Tests for port allocation."""

import socket

import pytest

from ssh_fixture.exceptions import PortAllocationError, SetupError
from ssh_fixture.fixture import SshFixture
from ssh_fixture.utils.ports import random_port


def test_random_port_is_bindable():
    """Test the returned port can be bound right away."""
    port = random_port()
    assert 1 <= port <= 65535

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", port))


def test_random_port_bind_failure():
    """Test bind errors surface as setup failures."""
    with pytest.raises(PortAllocationError) as exc_info:
        random_port("192.0.2.254")
    assert isinstance(exc_info.value, SetupError)


def test_sequential_fixtures_get_distinct_ports():
    """Test two fixtures each bind their own port."""
    with SshFixture() as first, SshFixture() as second:
        assert first.server.port != second.server.port
        assert first.server.is_running()
        assert second.server.is_running()
