"""Input validation utilities."""

import base64
import binascii
import re
import socket

from ssh_fixture.exceptions import ValidationError

_MD5_FINGERPRINT = re.compile(r"^(?:MD5:)?[0-9a-fA-F]{2}(?::[0-9a-fA-F]{2}){15}$")
_SHA256_PREFIX = "SHA256:"


class Validator:
    """Validate inputs and system state."""

    @staticmethod
    def validate_port(port: int) -> None:
        """Validate port number.

        Args:
            port: Port number to validate

        Raises:
            ValidationError: If port is invalid
        """
        if not (1 <= port <= 65535):
            raise ValidationError(f"Invalid port: {port}. Must be between 1-65535")

    @staticmethod
    def validate_fingerprint(fingerprint: str) -> None:
        """Validate a host key fingerprint.

        Accepts colon separated MD5 hex digests, optionally prefixed with
        ``MD5:``, and OpenSSH style ``SHA256:<base64>`` digests.

        Args:
            fingerprint: Fingerprint to validate

        Raises:
            ValidationError: If fingerprint is malformed
        """
        fingerprint = fingerprint.strip()
        if fingerprint.startswith(_SHA256_PREFIX):
            encoded = fingerprint[len(_SHA256_PREFIX):]
            padded = encoded + "=" * (-len(encoded) % 4)
            try:
                digest = base64.b64decode(padded, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValidationError(f"Invalid SHA256 fingerprint: {fingerprint}") from e
            if len(digest) != 32:
                raise ValidationError(f"Invalid SHA256 fingerprint: {fingerprint}")
            return

        if not _MD5_FINGERPRINT.match(fingerprint):
            raise ValidationError(f"Invalid MD5 fingerprint: {fingerprint}")

    @staticmethod
    def check_port_available(host: str, port: int) -> bool:
        """Check if nothing is listening on a port.

        Args:
            host: Host to check
            port: Port number to check

        Returns:
            True if port is available, False if in use
        """
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.settimeout(1)
                result = s.connect_ex((host, port))
                return result != 0
        except OSError:
            return False
