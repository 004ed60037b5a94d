"""CLI entry point for SSH Fixture."""

import argparse
import sys
import threading
from typing import NoReturn

from ssh_fixture import __version__
from ssh_fixture.config import FixtureConfig
from ssh_fixture.exceptions import FixtureError
from ssh_fixture.fixture import SshFixture
from ssh_fixture.logs import configure_logging
from ssh_fixture.utils.validation import Validator


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="SSH Fixture - run a throwaway SSH server for manual testing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve on a free loopback port
  ssh-fixture

  # Serve on a fixed port
  ssh-fixture --port 2222

  # Log in as any user whose password equals the username
  ssh -p <port> alice@127.0.0.1   (password: alice)

Environment variables:
  SSH_FIXTURE_SERVER_HOST   - Bind address
  SSH_FIXTURE_SERVER_PORT   - Bind port (0 picks a free one)
  SSH_FIXTURE_LOG_LEVEL     - Log level
        """,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument(
        "--host",
        type=str,
        help="Bind address (overrides config/env)",
    )

    parser.add_argument(
        "--port",
        type=int,
        help="Bind port (overrides config/env)",
    )

    parser.add_argument(
        "--hostkey",
        type=str,
        help="Name of the packaged host key resource",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )

    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> FixtureConfig:
    """Load configuration from the environment and apply CLI overrides.

    Args:
        args: Parsed command-line arguments

    Returns:
        Configuration object
    """
    config = FixtureConfig.from_env()
    config.auto_start = True

    if args.host:
        config.server.host = args.host

    if args.port:
        Validator.validate_port(args.port)
        config.server.port = args.port

    if args.hostkey:
        config.hostkey = args.hostkey

    if args.verbose:
        config.logging.level = "DEBUG"
    elif args.quiet:
        config.logging.level = "ERROR"

    return config


def main(argv=None) -> NoReturn:
    """Main entry point for CLI.

    Raises:
        SystemExit: Always exits with appropriate code
    """
    args = parse_args(argv)

    try:
        config = load_config(args)
        configure_logging(config.logging)

        with SshFixture(config=config) as fixture:
            if not args.quiet:
                print(f"SSH Fixture {__version__}")
                print(f"  Listening:   {fixture.server.host}:{fixture.server.port}")
                print(f"  Fingerprint: {fixture.fingerprint}")
                print("  Login:       any user, password = username")
                print("\nPress Ctrl-C to stop.")
            threading.Event().wait()

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)

    except FixtureError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
