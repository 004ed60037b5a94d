"""Utility modules for SSH Fixture."""

from ssh_fixture.utils.ports import random_port
from ssh_fixture.utils.validation import Validator

__all__ = ["random_port", "Validator"]
