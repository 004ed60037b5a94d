"""SSH Fixture - throwaway SSH server and pinned client for tests."""

__version__ = "1.0.0"
__license__ = "MIT"

from ssh_fixture.client import SSHClient
from ssh_fixture.config import FINGERPRINT, HOSTKEY, ClientConfig, FixtureConfig
from ssh_fixture.exceptions import (
    ClientNotSetUpError,
    ConfigurationError,
    FixtureError,
    HostKeyVerificationError,
    SetupError,
    TeardownError,
)
from ssh_fixture.fixture import SshFixture
from ssh_fixture.server import SshServer

__all__ = [
    "SshFixture",
    "SshServer",
    "SSHClient",
    "ClientConfig",
    "FixtureConfig",
    "FINGERPRINT",
    "HOSTKEY",
    "FixtureError",
    "ConfigurationError",
    "SetupError",
    "ClientNotSetUpError",
    "TeardownError",
    "HostKeyVerificationError",
]
