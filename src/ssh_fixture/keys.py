"""Host key loading and fingerprint verification."""

import base64
import hashlib
import io
from importlib import resources
from typing import List, Optional, Sequence

import paramiko
import structlog

from ssh_fixture.config import RESOURCE_PACKAGE
from ssh_fixture.exceptions import KeyProviderError
from ssh_fixture.utils.validation import Validator

logger = structlog.get_logger(__name__)

_KEY_CLASSES = (paramiko.RSAKey, paramiko.ECDSAKey, paramiko.Ed25519Key)


def md5_fingerprint(key: paramiko.PKey) -> str:
    """Colon separated MD5 hex digest of a public key."""
    return ":".join(f"{b:02x}" for b in key.get_fingerprint())


def sha256_fingerprint(key: paramiko.PKey) -> str:
    """OpenSSH style ``SHA256:<base64>`` digest of a public key."""
    digest = hashlib.sha256(key.asbytes()).digest()
    return "SHA256:" + base64.b64encode(digest).decode("ascii").rstrip("=")


class ResourceKeyPairProvider:
    """Load server host keys from resources packaged with a Python package."""

    def __init__(
        self, resource_names: Sequence[str], package: str = RESOURCE_PACKAGE
    ) -> None:
        """Initialize key pair provider.

        Args:
            resource_names: Names of PEM resources inside ``package``
            package: Dotted name of the package holding the resources
        """
        self.resource_names = list(resource_names)
        self.package = package
        self._keys: Optional[List[paramiko.PKey]] = None

    def load_keys(self) -> List[paramiko.PKey]:
        """Load every configured key, caching the result.

        Returns:
            List of private keys

        Raises:
            KeyProviderError: If a resource is missing or not a supported key
        """
        if self._keys is None:
            self._keys = [self._load(name) for name in self.resource_names]
        return list(self._keys)

    def _load(self, name: str) -> paramiko.PKey:
        """Read and parse a single key resource."""
        try:
            text = resources.files(self.package).joinpath(name).read_text(
                encoding="utf-8"
            )
        except (OSError, ModuleNotFoundError) as e:
            raise KeyProviderError(
                f"Cannot read host key resource {name} from {self.package}: {e}"
            ) from e

        for key_class in _KEY_CLASSES:
            try:
                key = key_class.from_private_key(io.StringIO(text))
            except (paramiko.SSHException, ValueError):
                continue
            logger.debug(
                "Loaded host key",
                resource=name,
                type=key.get_name(),
                fingerprint=md5_fingerprint(key),
            )
            return key

        raise KeyProviderError(f"Unsupported or encrypted host key resource: {name}")


class FingerprintVerifier:
    """Accept exactly one host key, identified by its fingerprint."""

    def __init__(self, fingerprint: str) -> None:
        """Initialize verifier.

        Args:
            fingerprint: MD5 (``aa:bb:...``, optional ``MD5:`` prefix) or
                ``SHA256:<base64>`` fingerprint of the trusted key

        Raises:
            ValidationError: If fingerprint is malformed
        """
        Validator.validate_fingerprint(fingerprint)
        fingerprint = fingerprint.strip()
        if fingerprint.startswith("SHA256:"):
            self._sha256 = True
            self.fingerprint = fingerprint
        else:
            self._sha256 = False
            self.fingerprint = fingerprint.lower().replace("md5:", "")

    def verify(self, hostname: str, port: int, key: paramiko.PKey) -> bool:
        """Check the key a server presented.

        Args:
            hostname: Host the client connected to
            port: Port the client connected to
            key: Host key presented by the server

        Returns:
            True if the key matches the pinned fingerprint
        """
        if self._sha256:
            return sha256_fingerprint(key).rstrip("=") == self.fingerprint.rstrip("=")
        return md5_fingerprint(key) == self.fingerprint

    def __repr__(self) -> str:
        return f"FingerprintVerifier({self.fingerprint!r})"
