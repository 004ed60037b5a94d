"""Authentication strategies installed on the fixture server.

Both strategies are for tests only and must never guard a real service.
"""

from typing import Callable

import structlog

logger = structlog.get_logger(__name__)

PasswordAuthenticator = Callable[[str, str], bool]
"""Credential predicate: ``(username, password) -> accepted``."""

GSSAPI_WITH_MIC = "gssapi-with-mic"


def username_equals_password(username: str, password: str) -> bool:
    """Accept a login iff the password is the username."""
    accepted = username == password
    logger.debug("Password authentication", username=username, accepted=accepted)
    return accepted


class BogusGSSAuthenticator:
    """GSS-API authenticator that is advertised but never authenticates.

    The server lists ``gssapi-with-mic`` among its methods so clients walk
    through method negotiation, but no GSS context is ever established and
    every principal is refused.
    """

    method = GSSAPI_WITH_MIC

    def enabled(self) -> bool:
        """Whether the engine should run a GSS-API exchange."""
        return False

    def accept(self, username: str, gss_authenticated: bool) -> bool:
        """Decide on a GSS-API login attempt."""
        logger.debug("Refusing GSS-API authentication", username=username)
        return False
