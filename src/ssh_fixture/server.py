"""In-process SSH server built on paramiko."""

import socket
import threading
from typing import List, Optional

import paramiko
import structlog

from ssh_fixture.auth import BogusGSSAuthenticator, PasswordAuthenticator
from ssh_fixture.commands import CommandFactory
from ssh_fixture.config import ServerSettings
from ssh_fixture.exceptions import SetupError, UnsupportedCommandError
from ssh_fixture.keys import ResourceKeyPairProvider
from ssh_fixture.types import SubsystemFactory

logger = structlog.get_logger(__name__)


class _SessionPolicy(paramiko.ServerInterface):
    """Answer paramiko's per-connection questions from the server's wiring."""

    def __init__(self, server: "SshServer") -> None:
        self.server = server

    def get_allowed_auths(self, username: str) -> str:
        methods = []
        if self.server.password_authenticator is not None:
            methods.append("password")
        if self.server.gss_authenticator is not None:
            methods.append(self.server.gss_authenticator.method)
        return ",".join(methods) or "none"

    def check_auth_password(self, username: str, password: str) -> int:
        authenticator = self.server.password_authenticator
        if authenticator is not None and authenticator(username, password):
            logger.info("Authenticated", username=username, method="password")
            return paramiko.AUTH_SUCCESSFUL
        logger.info("Authentication rejected", username=username, method="password")
        return paramiko.AUTH_FAILED

    def enable_auth_gssapi(self) -> bool:
        gss = self.server.gss_authenticator
        return gss is not None and gss.enabled()

    def check_auth_gssapi_with_mic(
        self, username: str, gss_authenticated: int = paramiko.AUTH_FAILED, cc_file=None
    ) -> int:
        gss = self.server.gss_authenticator
        if gss is not None and gss.accept(
            username, gss_authenticated == paramiko.AUTH_SUCCESSFUL
        ):
            return paramiko.AUTH_SUCCESSFUL
        return paramiko.AUTH_FAILED

    def check_channel_request(self, kind: str, chanid: int) -> int:
        if kind == "session":
            return paramiko.OPEN_SUCCEEDED
        return paramiko.OPEN_FAILED_ADMINISTRATIVELY_PROHIBITED

    def check_channel_exec_request(self, channel: paramiko.Channel, command: bytes) -> bool:
        factory = self.server.command_factory
        if factory is None:
            return False

        command_line = command.decode("utf-8", errors="replace")
        logger.info("Exec request", command=command_line)
        try:
            factory.create_command(command_line).start(channel)
        except UnsupportedCommandError as e:
            logger.warning("Exec request refused", command=command_line, reason=str(e))
            return False
        except Exception:
            logger.exception("Exec request failed", command=command_line)
            return False
        return True


class SshServer:
    """A paramiko SSH server accepting connections on a background thread.

    Configure the public attributes, then call :meth:`start`. Every
    accepted connection gets its own paramiko ``Transport`` in server mode,
    carrying the configured host keys, authenticators, subsystems and
    command factory.
    """

    def __init__(self, settings: Optional[ServerSettings] = None) -> None:
        """Initialize an unconfigured server.

        Args:
            settings: Engine settings; defaults are used when omitted
        """
        self.settings = settings or ServerSettings()
        self.host = self.settings.host
        self.port = self.settings.port
        self.key_pair_provider: Optional[ResourceKeyPairProvider] = None
        self.password_authenticator: Optional[PasswordAuthenticator] = None
        self.gss_authenticator: Optional[BogusGSSAuthenticator] = None
        self.subsystem_factories: List[SubsystemFactory] = []
        self.command_factory: Optional[CommandFactory] = None

        self._socket: Optional[socket.socket] = None
        self._accept_thread: Optional[threading.Thread] = None
        self._running = threading.Event()
        self._transports: List[paramiko.Transport] = []
        self._lock = threading.Lock()

    @classmethod
    def set_up_default_server(
        cls, settings: Optional[ServerSettings] = None
    ) -> "SshServer":
        """Create a server carrying the engine defaults only."""
        return cls(settings)

    def is_running(self) -> bool:
        return self._running.is_set()

    def connection_count(self) -> int:
        """Number of connections currently being served."""
        with self._lock:
            return len(self._transports)

    def start(self) -> None:
        """Bind the listening socket and start accepting connections.

        Blocks until the socket is bound and the accept loop is running.

        Raises:
            SetupError: If no host key is configured or binding fails
        """
        if self.key_pair_provider is None:
            raise SetupError("No key pair provider configured")
        host_keys = self.key_pair_provider.load_keys()

        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen(self.settings.backlog)
            sock.settimeout(self.settings.accept_timeout)
        except OSError as e:
            sock.close()
            raise SetupError(f"Cannot bind SSH server to {self.host}:{self.port}: {e}") from e

        self.port = sock.getsockname()[1]
        self._socket = sock

        started = threading.Event()
        self._running.set()
        self._accept_thread = threading.Thread(
            target=self._accept_loop,
            args=(sock, host_keys, started),
            name=f"ssh-accept-{self.port}",
            daemon=True,
        )
        self._accept_thread.start()
        started.wait()
        logger.info("SSH server started", host=self.host, port=self.port)

    def stop(self, immediately: bool = False) -> None:
        """Stop accepting connections.

        Args:
            immediately: Also close every established connection instead of
                letting them finish on their own
        """
        self._running.clear()

        if self._socket is not None:
            try:
                # Wakes a blocked accept() on Linux
                self._socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            self._socket.close()
            self._socket = None

        if self._accept_thread is not None:
            self._accept_thread.join()
            self._accept_thread = None

        with self._lock:
            transports = list(self._transports)
            self._transports.clear()

        if immediately:
            for transport in transports:
                transport.close()

        logger.info(
            "SSH server stopped",
            host=self.host,
            port=self.port,
            closed_connections=len(transports) if immediately else 0,
        )

    def _accept_loop(
        self,
        sock: socket.socket,
        host_keys: List[paramiko.PKey],
        started: threading.Event,
    ) -> None:
        started.set()
        while self._running.is_set():
            try:
                client_sock, addr = sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break

            logger.debug("Accepted connection", peer=f"{addr[0]}:{addr[1]}")
            threading.Thread(
                target=self._serve_connection,
                args=(client_sock, addr, host_keys),
                name=f"ssh-session-{addr[1]}",
                daemon=True,
            ).start()

    def _serve_connection(
        self,
        client_sock: socket.socket,
        addr,
        host_keys: List[paramiko.PKey],
    ) -> None:
        """Negotiate one connection and track it until the peer goes away."""
        peer = f"{addr[0]}:{addr[1]}"
        client_sock.settimeout(None)
        transport = paramiko.Transport(client_sock)
        transport.banner_timeout = self.settings.negotiation_timeout
        transport.handshake_timeout = self.settings.negotiation_timeout
        for key in host_keys:
            transport.add_server_key(key)
        for factory in self.subsystem_factories:
            transport.set_subsystem_handler(factory.name, factory.handler, *factory.args)

        with self._lock:
            if not self._running.is_set():
                transport.close()
                return
            self._transports.append(transport)

        try:
            transport.start_server(server=_SessionPolicy(self))
        except (paramiko.SSHException, EOFError, OSError) as e:
            logger.warning("SSH negotiation failed", peer=peer, error=str(e))
            transport.close()
        else:
            transport.join()
            logger.debug("Connection closed", peer=peer)
        finally:
            with self._lock:
                if transport in self._transports:
                    self._transports.remove(transport)
