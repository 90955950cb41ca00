"""Signed, expiring tokens for sessions and OTP challenges.

Both token kinds are HS256 JWTs. Each kind has its own key and audience, so
an OTP token handed to the browser can never be replayed as a session token.

Expiry is enforced here against an injectable clock rather than by PyJWT,
because ``exp`` carries sub-second precision and tests need to move time.
"""

import hashlib
import hmac
import logging
import secrets
from datetime import timedelta
from typing import Any

import jwt

from jarvis_web.core.config import Settings
from jarvis_web.core.errors import ExpiredError, InvalidSignatureError
from jarvis_web.core.store import Clock, utcnow

logger = logging.getLogger(__name__)

_ALGORITHM = "HS256"

SESSION_AUDIENCE = "jarvis-web:session"
OTP_AUDIENCE = "jarvis-web:otp"

# Claims the codec owns; never accepted from callers, never returned to them.
_RESERVED_CLAIMS = frozenset({"iat", "exp", "aud", "iss"})

# Label for deriving the OTP key from AUTH_SECRET when OTP_SECRET is unset.
_OTP_KEY_LABEL = b"jarvis-web otp token key"

# Process-local fallback when AUTH_SECRET is unset (development only;
# config validation forbids this in production).
_ephemeral_secret: str | None = None


class TokenCodec:
    """Sign and verify compact tokens carrying a small payload and an expiry.

    Args:
        secret: HMAC signing key.
        audience: Token kind; verification rejects other kinds.
        issuer: Value of the ``iss`` claim.
        clock: Source of the current UTC time.
    """

    def __init__(
        self,
        *,
        secret: str,
        audience: str,
        issuer: str,
        clock: Clock = utcnow,
    ) -> None:
        self._secret = secret
        self._audience = audience
        self._issuer = issuer
        self._clock = clock

    def sign(self, payload: dict[str, Any], ttl: timedelta) -> str:
        """Encode *payload* into a signed token valid for *ttl*.

        Args:
            payload: Caller claims. Must not use iat/exp/aud/iss.
            ttl: Lifetime from now.

        Returns:
            Encoded JWT string.

        Raises:
            ValueError: If payload contains a reserved claim.
        """
        clash = _RESERVED_CLAIMS.intersection(payload)
        if clash:
            raise ValueError(f"Reserved claims in payload: {sorted(clash)}")

        now = self._clock()
        claims = {
            **payload,
            "iat": now.timestamp(),
            "exp": (now + ttl).timestamp(),
            "aud": self._audience,
            "iss": self._issuer,
        }
        return jwt.encode(claims, self._secret, algorithm=_ALGORITHM)

    def decode(self, token: str) -> dict[str, Any]:
        """Check signature, audience and issuer without checking expiry.

        Returns:
            All claims, including ``iat`` and ``exp``.

        Raises:
            InvalidSignatureError: For any malformed, tampered or foreign token.
        """
        if not isinstance(token, str) or not token:
            raise InvalidSignatureError()
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                audience=self._audience,
                issuer=self._issuer,
                options={
                    "require": ["exp", "iat", "aud", "iss"],
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidSignatureError() from exc

        if not isinstance(claims.get("exp"), int | float):
            raise InvalidSignatureError()
        return claims

    def fingerprint(self, value: str) -> str:
        """Keyed HMAC-SHA256 of *value* under this codec's secret.

        Lets a token commit to a secret value (the OTP code) without
        revealing it: JWT payloads are only encoded, not encrypted.
        """
        return hmac.new(
            self._secret.encode(), value.encode(), hashlib.sha256
        ).hexdigest()

    def check_expiry(self, claims: dict[str, Any]) -> None:
        """Raise ExpiredError once the current time reaches ``exp``."""
        if self._clock().timestamp() >= claims["exp"]:
            raise ExpiredError()

    def verify(self, token: str) -> dict[str, Any]:
        """Validate *token* and return the caller payload.

        Raises:
            InvalidSignatureError: Signature, audience or structure is wrong.
            ExpiredError: Current time is at or past the embedded expiry.
        """
        claims = self.decode(token)
        self.check_expiry(claims)
        return strip_reserved(claims)


def strip_reserved(claims: dict[str, Any]) -> dict[str, Any]:
    """Return *claims* without the codec-owned claims."""
    return {k: v for k, v in claims.items() if k not in _RESERVED_CLAIMS}


def token_digest(token: str) -> str:
    """SHA-256 hex digest of a token, used as a store key."""
    return hashlib.sha256(token.encode()).hexdigest()


def _signing_secret(settings: Settings) -> str:
    global _ephemeral_secret

    secret = settings.auth_secret.get_secret_value()
    if secret:
        return secret
    if _ephemeral_secret is None:
        _ephemeral_secret = secrets.token_urlsafe(32)
        logger.warning(
            "AUTH_SECRET not set; using a per-process key. "
            "Sessions will not survive a restart."
        )
    return _ephemeral_secret


def derive_otp_secret(auth_secret: str) -> str:
    """Derive the OTP signing key from the session key."""
    return hmac.new(auth_secret.encode(), _OTP_KEY_LABEL, hashlib.sha256).hexdigest()


def session_codec(settings: Settings, clock: Clock = utcnow) -> TokenCodec:
    """Build the codec for long-lived session tokens."""
    return TokenCodec(
        secret=_signing_secret(settings),
        audience=SESSION_AUDIENCE,
        issuer=settings.auth_issuer,
        clock=clock,
    )


def otp_codec(settings: Settings, clock: Clock = utcnow) -> TokenCodec:
    """Build the codec for OTP challenge tokens."""
    secret = settings.otp_secret.get_secret_value() or derive_otp_secret(
        _signing_secret(settings)
    )
    return TokenCodec(
        secret=secret,
        audience=OTP_AUDIENCE,
        issuer=settings.auth_issuer,
        clock=clock,
    )
