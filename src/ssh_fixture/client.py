"""SSH client handle with host key pinning."""

import socket
import threading
from typing import BinaryIO, Dict, List, Optional, Protocol, Union

import paramiko
import structlog

from ssh_fixture.config import ClientConfig
from ssh_fixture.exceptions import HostKeyVerificationError
from ssh_fixture.keys import FingerprintVerifier, md5_fingerprint
from ssh_fixture.types import CommandResult, ConnectionState

logger = structlog.get_logger(__name__)


class HostKeyVerifier(Protocol):
    def verify(self, hostname: str, port: int, key: paramiko.PKey) -> bool:
        ...


class SSHClient:
    """A single SSH connection driven step by step.

    Connecting, authenticating and running commands are separate calls so
    tests can observe each stage. The server's host key must be accepted
    by at least one registered verifier before authentication is attempted.
    """

    def __init__(self, config: Optional[ClientConfig] = None) -> None:
        """Initialize an unconnected client.

        Args:
            config: Connection settings; defaults are used when omitted
        """
        self.config = config or ClientConfig()
        self.verifiers: List[HostKeyVerifier] = []
        self._transport: Optional[paramiko.Transport] = None

    def add_host_key_verifier(self, verifier: Union[str, HostKeyVerifier]) -> None:
        """Trust host keys accepted by ``verifier``.

        Args:
            verifier: A verifier, or a fingerprint string to pin
        """
        if isinstance(verifier, str):
            verifier = FingerprintVerifier(verifier)
        self.verifiers.append(verifier)

    @property
    def state(self) -> ConnectionState:
        if self.is_connected():
            return ConnectionState.CONNECTED
        return ConnectionState.DISCONNECTED

    @property
    def transport(self) -> paramiko.Transport:
        if self._transport is None:
            raise paramiko.SSHException("Not connected")
        return self._transport

    def is_connected(self) -> bool:
        return self._transport is not None and self._transport.is_active()

    def is_authenticated(self) -> bool:
        return self.is_connected() and self.transport.is_authenticated()

    def connect(self, hostname: str, port: int) -> None:
        """Open the SSH transport and verify the server's host key.

        Blocks until key exchange completes.

        Args:
            hostname: Server address
            port: Server port

        Raises:
            HostKeyVerificationError: If no verifier accepts the host key
            paramiko.SSHException: If negotiation fails
            OSError: If the TCP connection fails
        """
        sock = socket.create_connection(
            (hostname, port), timeout=self.config.connect_timeout
        )
        transport = paramiko.Transport(sock)
        transport.banner_timeout = self.config.banner_timeout
        transport.auth_timeout = self.config.auth_timeout
        transport.use_compression(self.config.compress)
        try:
            transport.start_client(timeout=self.config.connect_timeout)
            key = transport.get_remote_server_key()
            if not any(v.verify(hostname, port, key) for v in self.verifiers):
                logger.warning(
                    "Host key rejected",
                    host=hostname,
                    port=port,
                    fingerprint=md5_fingerprint(key),
                )
                raise HostKeyVerificationError(hostname, port, md5_fingerprint(key))
        except BaseException:
            transport.close()
            raise

        if self.config.keepalive_interval:
            transport.set_keepalive(self.config.keepalive_interval)
        self._transport = transport
        logger.info("Connected", host=hostname, port=port)

    def auth_password(self, username: str, password: str) -> None:
        """Authenticate with a password.

        Raises:
            paramiko.AuthenticationException: If the server rejects the login
        """
        self.transport.auth_password(username, password)
        logger.debug("Authenticated", username=username)

    def exec(self, command: str, stdin: Optional[bytes] = None) -> CommandResult:
        """Run a command and wait for it to finish.

        Args:
            command: Command line to execute remotely
            stdin: Data to feed to the command before closing its input

        Returns:
            CommandResult with decoded output and exit status
        """
        channel = self.transport.open_session()
        try:
            channel.exec_command(command)
            output: Dict[str, bytes] = {}
            readers = [
                threading.Thread(
                    target=_read_stream,
                    args=(channel.makefile("rb"), output, "stdout"),
                    daemon=True,
                ),
                threading.Thread(
                    target=_read_stream,
                    args=(channel.makefile_stderr("rb"), output, "stderr"),
                    daemon=True,
                ),
            ]
            # A stream left unread fills its window and stalls the remote process
            for reader in readers:
                reader.start()
            if stdin:
                channel.sendall(stdin)
            channel.shutdown_write()
            for reader in readers:
                reader.join()
            return_code = channel.recv_exit_status()
        finally:
            channel.close()

        return CommandResult(
            success=return_code == 0,
            stdout=output.get("stdout", b"").decode("utf-8", errors="replace"),
            stderr=output.get("stderr", b"").decode("utf-8", errors="replace"),
            return_code=return_code,
        )

    def open_sftp(self) -> paramiko.SFTPClient:
        """Open an SFTP session over this connection."""
        return paramiko.SFTPClient.from_transport(self.transport)

    def disconnect(self) -> None:
        """Close the connection. Safe to call when not connected."""
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.close()
            logger.info("Disconnected")

    def __enter__(self) -> "SSHClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()


def _read_stream(stream: BinaryIO, output: Dict[str, bytes], name: str) -> None:
    output[name] = stream.read()
