"""Remote command execution for the fixture server."""

import subprocess
import threading
from typing import Callable, Dict, List, Optional, Protocol

import paramiko
import structlog

from ssh_fixture.exceptions import UnsupportedCommandError

logger = structlog.get_logger(__name__)

COMMAND_NOT_FOUND = 127
_BUFFER_SIZE = 32768


class Command(Protocol):
    """Something that serves one exec request on a session channel."""

    def start(self, channel: paramiko.Channel) -> threading.Thread:
        """Begin serving the channel and return the worker thread."""
        ...


CommandFactoryFunc = Callable[[str], Command]
"""Map a raw command string to a command."""


def split_command(command: str) -> List[str]:
    """Tokenize a command string on whitespace."""
    return command.split()


class ProcessCommand:
    """Run an argv as an OS process wired to a session channel.

    The channel's input feeds the process's stdin, stdout and stderr are
    sent back on the channel, and the exit code becomes the channel's exit
    status.
    """

    def __init__(self, argv: List[str]) -> None:
        """Initialize process command.

        Args:
            argv: Program and arguments to execute
        """
        self.argv = argv

    def start(self, channel: paramiko.Channel) -> threading.Thread:
        thread = threading.Thread(
            target=self.run, args=(channel,), name=f"exec-{channel.get_id()}", daemon=True
        )
        thread.start()
        return thread

    def run(self, channel: paramiko.Channel) -> int:
        """Execute the process and block until it exits.

        Args:
            channel: Session channel carrying the process streams

        Returns:
            Process exit code
        """
        try:
            process = subprocess.Popen(
                self.argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            logger.warning("Command could not be started", argv=self.argv, error=str(e))
            channel.sendall_stderr(f"{self.argv[0]}: {e.strerror}\n".encode())
            return self._finish(channel, COMMAND_NOT_FOUND)

        feeder = threading.Thread(
            target=self._feed_stdin, args=(channel, process), daemon=True
        )
        pumps = [
            threading.Thread(
                target=self._pump, args=(process.stdout, channel.sendall), daemon=True
            ),
            threading.Thread(
                target=self._pump,
                args=(process.stderr, channel.sendall_stderr),
                daemon=True,
            ),
        ]
        feeder.start()
        for pump in pumps:
            pump.start()

        return_code = process.wait()
        for pump in pumps:
            pump.join()

        logger.info("Command finished", argv=self.argv, return_code=return_code)
        return self._finish(channel, return_code)

    @staticmethod
    def _feed_stdin(channel: paramiko.Channel, process: subprocess.Popen) -> None:
        """Copy channel input to the process until either side closes."""
        stdin = process.stdin
        try:
            while True:
                data = channel.recv(_BUFFER_SIZE)
                if not data:
                    break
                stdin.write(data)
                stdin.flush()
        except OSError:
            pass
        finally:
            try:
                stdin.close()
            except OSError:
                pass

    @staticmethod
    def _pump(stream, send: Callable[[bytes], None]) -> None:
        """Copy a process output stream to the channel."""
        try:
            for chunk in iter(lambda: stream.read1(_BUFFER_SIZE), b""):
                send(chunk)
        except OSError:
            pass
        finally:
            stream.close()

    @staticmethod
    def _finish(channel: paramiko.Channel, return_code: int) -> int:
        if return_code < 0:
            # Killed by a signal; report like a shell does
            return_code = 128 - return_code
        try:
            channel.send_exit_status(return_code)
            channel.shutdown_write()
        except (OSError, EOFError, paramiko.SSHException) as e:
            logger.debug("Channel gone before exit status", error=str(e))
        finally:
            channel.close()
        return return_code


def process_command_factory(command: str) -> ProcessCommand:
    """Build a process command from a whitespace separated command line."""
    return ProcessCommand(split_command(command))


class CommandFactory:
    """Dispatch exec requests to named handlers with a default delegate."""

    def __init__(self, delegate: Optional[CommandFactoryFunc] = None) -> None:
        """Initialize command factory.

        Args:
            delegate: Factory for any command no handler is registered for
        """
        self.delegate = delegate
        self.handlers: Dict[str, CommandFactoryFunc] = {}

    def register(self, program: str, factory: CommandFactoryFunc) -> None:
        """Serve commands whose first word is ``program`` with ``factory``."""
        self.handlers[program] = factory

    def create_command(self, command: str) -> Command:
        """Map a raw command string to a command.

        Args:
            command: Command line sent by the client

        Returns:
            Command ready to be started on a channel

        Raises:
            UnsupportedCommandError: If nothing can handle the command
        """
        argv = split_command(command)
        if not argv:
            raise UnsupportedCommandError("Empty command")

        factory = self.handlers.get(argv[0], self.delegate)
        if factory is None:
            raise UnsupportedCommandError(f"Unknown command: {command}")
        return factory(command)
