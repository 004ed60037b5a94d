"""Tests for the paramiko server engine."""

import socket
import time

import pytest

from ssh_fixture.client import SSHClient
from ssh_fixture.config import FINGERPRINT, HOSTKEY, ServerSettings
from ssh_fixture.exceptions import SetupError
from ssh_fixture.keys import ResourceKeyPairProvider
from ssh_fixture.server import SshServer
from ssh_fixture.utils.validation import Validator


@pytest.fixture
def bare_server():
    """Server with only a host key configured."""
    server = SshServer.set_up_default_server(ServerSettings(accept_timeout=0.2))
    server.key_pair_provider = ResourceKeyPairProvider([HOSTKEY])
    yield server
    if server.is_running():
        server.stop(immediately=True)


def test_start_requires_host_key():
    """Test a server without keys cannot start."""
    with pytest.raises(SetupError):
        SshServer().start()


def test_start_assigns_port_when_zero(bare_server):
    """Test port 0 is resolved to the bound port."""
    bare_server.start()

    assert bare_server.is_running()
    assert bare_server.port > 0
    assert not Validator.check_port_available(bare_server.host, bare_server.port)


def test_bind_conflict_is_setup_error(bare_server):
    """Test binding an occupied port fails loudly."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        bare_server.port = blocker.getsockname()[1]

        with pytest.raises(SetupError):
            bare_server.start()
    assert not bare_server.is_running()


def test_stop_closes_listener(bare_server):
    """Test the port is released on stop."""
    bare_server.start()
    port = bare_server.port

    bare_server.stop()

    assert not bare_server.is_running()
    assert bare_server.port == port
    assert Validator.check_port_available(bare_server.host, port)


def test_garbage_client_does_not_kill_server(bare_server):
    """Test a failed negotiation leaves the accept loop running."""
    bare_server.start()

    with socket.create_connection((bare_server.host, bare_server.port)) as s:
        s.sendall(b"not ssh at all\r\n")

    assert bare_server.is_running()
    assert not Validator.check_port_available(bare_server.host, bare_server.port)


def _wait_for_connections(server: SshServer, expected: int, timeout: float = 10.0) -> int:
    deadline = time.monotonic() + timeout
    while server.connection_count() != expected and time.monotonic() < deadline:
        time.sleep(0.05)
    return server.connection_count()


def test_closed_connections_are_forgotten(bare_server):
    """Test connections drop out of the server's bookkeeping once the peer leaves."""
    bare_server.start()

    for _ in range(5):
        client = SSHClient()
        client.add_host_key_verifier(FINGERPRINT)
        client.connect(bare_server.host, bare_server.port)
        assert _wait_for_connections(bare_server, 1) == 1
        client.disconnect()
        assert _wait_for_connections(bare_server, 0) == 0
