"""Type definitions for SSH Fixture."""

from enum import Enum
from typing import Any, NamedTuple, Tuple


class LifecycleState(str, Enum):
    """States of the fixture server lifecycle."""

    NOT_STARTED = "not-started"
    STARTED = "started"
    STOPPED = "stopped"


class ConnectionState(str, Enum):
    """Connection states of a client handle."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class CommandResult(NamedTuple):
    """Result of remote command execution."""

    success: bool
    stdout: str
    stderr: str
    return_code: int = 0


class SubsystemFactory(NamedTuple):
    """A named SSH subsystem and the paramiko handler serving it."""

    name: str
    handler: type
    args: Tuple[Any, ...] = ()
