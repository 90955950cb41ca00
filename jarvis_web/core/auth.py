"""Credential helpers and the session authenticator.

Pipeline:
- secrets_match: constant-time equality for passwords, codes and keys
- extract_bearer: Authorization header parsing
- SessionAuthenticator: static service key or valid session token
- issue_session_token: the only way a session token is minted
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta

from jarvis_web.core.errors import APIError, UnauthorizedError
from jarvis_web.core.tokens import TokenCodec

logger = logging.getLogger(__name__)

VIA_SESSION = "session"
VIA_SERVICE_KEY = "service_key"


def secrets_match(submitted: str, expected: str) -> bool:
    """Compare two secrets in constant time.

    An empty *expected* never matches, so an unset credential can't be
    satisfied by an empty submission.
    """
    if not expected:
        return False
    return secrets.compare_digest(submitted.encode(), expected.encode())


def extract_bearer(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


@dataclass(frozen=True)
class Principal:
    """Who a protected request runs as.

    Attributes:
        subject: Fixed principal identity, or "service" for the static key.
        via: VIA_SESSION or VIA_SERVICE_KEY.
    """

    subject: str
    via: str


def issue_session_token(codec: TokenCodec, *, subject: str, ttl: timedelta) -> str:
    """Mint a session token for the fixed principal."""
    return codec.sign({"sub": subject, "role": "admin"}, ttl)


class SessionAuthenticator:
    """Guard run before every protected request.

    Args:
        codec: Session-token codec.
        service_api_key: Static credential for machine clients; empty
            disables it.
    """

    def __init__(self, codec: TokenCodec, service_api_key: str = "") -> None:
        self._codec = codec
        self._service_api_key = service_api_key

    def authenticate(self, authorization: str | None) -> Principal:
        """Validate the bearer credential from an Authorization header.

        Returns:
            The authenticated Principal.

        Raises:
            UnauthorizedError: For every failure, whatever the cause.
        """
        token = extract_bearer(authorization)
        if token is None:
            raise UnauthorizedError()

        if secrets_match(token, self._service_api_key):
            return Principal(subject="service", via=VIA_SERVICE_KEY)

        try:
            payload = self._codec.verify(token)
        except APIError as exc:
            logger.info("Rejected bearer token: %s", exc.code)
            raise UnauthorizedError() from exc

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise UnauthorizedError()
        return Principal(subject=subject, via=VIA_SESSION)
