"""Custom exceptions for SSH Fixture."""

import paramiko


class FixtureError(Exception):
    """Base exception for all fixture errors."""

    pass


class ConfigurationError(FixtureError):
    """Raised when configuration is invalid."""

    pass


class ValidationError(FixtureError):
    """Raised when validation fails."""

    pass


class SetupError(FixtureError):
    """Raised when the fixture cannot be built or started."""

    pass


class PortAllocationError(SetupError):
    """Raised when no free port can be obtained from the OS."""

    pass


class KeyProviderError(SetupError):
    """Raised when a host key resource cannot be loaded."""

    pass


class ClientNotSetUpError(FixtureError):
    """Raised when the client is requested before one was set up."""

    pass


class TeardownError(FixtureError):
    """Raised when disconnecting the client or stopping the server fails."""

    pass


class UnsupportedCommandError(FixtureError):
    """Raised when no handler exists for a remote command."""

    pass


class HostKeyVerificationError(paramiko.SSHException):
    """Raised when the server presents a host key no verifier accepts."""

    def __init__(self, hostname: str, port: int, fingerprint: str) -> None:
        super().__init__(
            f"Host key for [{hostname}]:{port} with fingerprint {fingerprint} "
            "was not accepted by any verifier"
        )
        self.hostname = hostname
        self.port = port
        self.fingerprint = fingerprint
