"""Ephemeral port discovery."""

import socket

import structlog

from ssh_fixture.exceptions import PortAllocationError

logger = structlog.get_logger(__name__)


def random_port(host: str = "127.0.0.1") -> int:
    """Ask the OS for a currently unused TCP port.

    The temporary socket is closed before returning, so another process may
    grab the port before the server binds it. Callers accept that race.

    Args:
        host: Address to bind

    Returns:
        A port number that was free at the time of the call

    Raises:
        PortAllocationError: If the temporary socket cannot be bound or closed
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind((host, 0))
            port = s.getsockname()[1]
    except OSError as e:
        raise PortAllocationError(f"Could not allocate a port on {host}: {e}") from e

    logger.debug("Allocated port", host=host, port=port)
    return port
