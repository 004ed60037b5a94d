"""Tests for the command line interface."""

import pytest
import structlog

from ssh_fixture.exceptions import ValidationError
from ssh_fixture.main import load_config, main, parse_args


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging configuration done by the CLI."""
    yield
    structlog.reset_defaults()


def test_parse_args_defaults():
    """Test defaults leave configuration untouched."""
    args = parse_args([])
    assert args.host is None
    assert args.port is None
    assert not args.verbose


def test_load_config_overrides():
    """Test CLI options override config values."""
    config = load_config(parse_args(["--host", "127.0.0.2", "--port", "2222", "-v"]))

    assert config.server.host == "127.0.0.2"
    assert config.server.port == 2222
    assert config.logging.level == "DEBUG"
    assert config.auto_start


def test_load_config_rejects_bad_port():
    """Test out of range ports are refused."""
    with pytest.raises(ValidationError):
        load_config(parse_args(["--port", "70000"]))


def test_main_reports_fixture_errors(capsys):
    """Test fixture errors exit with status 1."""
    with pytest.raises(SystemExit) as exc_info:
        main(["--quiet", "--hostkey", "missing.pem"])

    assert exc_info.value.code == 1
    assert "Host key resource not found" in capsys.readouterr().err
