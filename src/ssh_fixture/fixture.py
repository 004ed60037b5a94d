"""Ephemeral SSH server and client for tests."""

from typing import Optional

import paramiko
import structlog

from ssh_fixture.auth import BogusGSSAuthenticator, username_equals_password
from ssh_fixture.client import SSHClient
from ssh_fixture.commands import CommandFactory, process_command_factory
from ssh_fixture.config import ClientConfig, FixtureConfig
from ssh_fixture.exceptions import ClientNotSetUpError, ConfigurationError, TeardownError
from ssh_fixture.keys import ResourceKeyPairProvider
from ssh_fixture.lifecycle import LifecycleFlag
from ssh_fixture.server import SshServer
from ssh_fixture.sftp import sftp_subsystem_factory
from ssh_fixture.types import LifecycleState
from ssh_fixture.utils.ports import random_port

logger = structlog.get_logger(__name__)


class SshFixture:
    """Throwaway SSH server plus a client that trusts only that server.

    Call :meth:`setup` before a test and :meth:`teardown` after it, or use
    the fixture as a context manager. The server listens on a loopback port
    picked by the OS, accepts any login whose password equals the username,
    serves SFTP, and runs exec requests as local processes.

    One client is cached per fixture. ``setup_client`` only honours the
    configuration passed on its first call; later calls return the same
    client unchanged.
    """

    def __init__(
        self, auto_start: Optional[bool] = None, config: Optional[FixtureConfig] = None
    ) -> None:
        """Build the server without starting it.

        Args:
            auto_start: Start the server in :meth:`setup`; overrides config
            config: Fixture configuration; read from the environment if omitted

        Raises:
            ConfigurationError: If the configuration is invalid
            SetupError: If no port can be allocated or the host key is unusable
        """
        self.config = config or FixtureConfig.from_env()
        issues = self.config.validate_config()
        if issues:
            raise ConfigurationError("; ".join(issues))

        self.auto_start = self.config.auto_start if auto_start is None else auto_start
        self._state = LifecycleFlag()
        self._client: Optional[SSHClient] = None
        self._server = self._default_ssh_server()

    @property
    def server(self) -> SshServer:
        return self._server

    @property
    def state(self) -> LifecycleState:
        return self._state.state

    @property
    def fingerprint(self) -> str:
        return self.config.fingerprint

    def setup(self) -> None:
        """Test setup hook."""
        if self.auto_start:
            self.start()

    def teardown(self) -> None:
        """Test teardown hook: disconnect the client, then stop the server.

        Raises:
            TeardownError: If disconnecting or stopping fails
        """
        try:
            self.stop_client()
        finally:
            self.stop_server()

    def __enter__(self) -> "SshFixture":
        self.setup()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.teardown()

    def start(self) -> None:
        """Start the server unless it is already running.

        Concurrent callers are safe: exactly one of them starts the server.

        Raises:
            SetupError: If the server cannot bind its port
        """
        previous = self._claim_start()
        if previous is None:
            return

        logger.debug("Starting fixture", previous=previous.value)
        try:
            self._server.start()
        except BaseException:
            self._state.compare_and_set(LifecycleState.STARTED, previous)
            raise

    def _claim_start(self) -> Optional[LifecycleState]:
        for previous in (LifecycleState.NOT_STARTED, LifecycleState.STOPPED):
            if self._state.compare_and_set(previous, LifecycleState.STARTED):
                return previous
        return None

    def setup_connected_default_client(self) -> SSHClient:
        return self.connect_client(self.setup_default_client())

    def setup_default_client(self) -> SSHClient:
        return self.setup_client(self.config.client)

    def setup_client(self, config: ClientConfig) -> SSHClient:
        """Return the fixture's client, creating it on first use.

        Args:
            config: Client settings, used only when the client is created

        Returns:
            Client pinned to the server's host key fingerprint
        """
        if self._client is None:
            client = SSHClient(config)
            client.add_host_key_verifier(self.config.fingerprint)
            self._client = client
        return self._client

    def get_client(self) -> SSHClient:
        """Return the client created by one of the ``setup_*client`` methods.

        Raises:
            ClientNotSetUpError: If no client was set up yet
        """
        if self._client is not None:
            return self._client

        raise ClientNotSetUpError("First call one of the setup_*client methods")

    def connect_client(self, client: SSHClient) -> SSHClient:
        """Connect a client to the fixture server.

        Raises:
            HostKeyVerificationError: If the client does not trust the server key
            paramiko.SSHException: If negotiation fails
            OSError: If the server is unreachable
        """
        client.connect(self._server.host, self._server.port)
        return client

    def stop_client(self) -> None:
        """Disconnect and forget the client, if any.

        Raises:
            TeardownError: If disconnecting fails; the client is dropped anyway
        """
        client, self._client = self._client, None
        if client is None or not client.is_connected():
            return

        try:
            client.disconnect()
        except (OSError, EOFError, paramiko.SSHException) as e:
            raise TeardownError(f"Failed to disconnect client: {e}") from e

    def stop_server(self) -> None:
        """Stop the server if this fixture started it.

        Raises:
            TeardownError: If the server fails to stop
        """
        if not self._state.compare_and_set(LifecycleState.STARTED, LifecycleState.STOPPED):
            return

        try:
            self._server.stop(immediately=True)
        except OSError as e:
            raise TeardownError(f"Failed to stop server: {e}") from e

    def _default_ssh_server(self) -> SshServer:
        settings = self.config.server
        server = SshServer.set_up_default_server(settings)
        server.port = settings.port or random_port(settings.host)
        server.key_pair_provider = ResourceKeyPairProvider([self.config.hostkey])
        server.key_pair_provider.load_keys()
        server.password_authenticator = username_equals_password
        server.gss_authenticator = BogusGSSAuthenticator()
        server.subsystem_factories = [sftp_subsystem_factory()]
        server.command_factory = CommandFactory(delegate=process_command_factory)

        logger.debug(
            "Provisioned SSH server",
            host=server.host,
            port=server.port,
            hostkey=self.config.hostkey,
        )
        return server
