"""Logging setup for SSH Fixture."""

import logging
import sys

import structlog

from ssh_fixture.config import LoggingConfig


def configure_logging(config: LoggingConfig) -> None:
    """Configure structlog output for command line use.

    Args:
        config: Logging configuration
    """
    level = logging.getLevelName(config.level)
    if not isinstance(level, int):
        level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if config.json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
