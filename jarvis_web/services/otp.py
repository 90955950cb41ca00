"""One-time passcode issuance and verification.

The challenge lives in a signed OTP token handed to the client, not in
server memory, so any worker can verify it. The token commits to the code
through a keyed fingerprint; the code itself only travels over the
out-of-band channel.

The server keeps two small records per token, keyed by the token's SHA-256
digest and expiring with it:
- ``otp-attempts:<digest>``: verification attempts so far
- ``otp-spent:<digest>``: set once the token succeeded, was exhausted, or
  expired; a spent token counts as no pending challenge
"""

import logging
import re
import secrets
from datetime import timedelta

from jarvis_web.core.auth import issue_session_token, secrets_match
from jarvis_web.core.errors import (
    DeliveryFailedError,
    ExpiredError,
    InvalidCodeError,
    InvalidFormatError,
    NoPendingChallengeError,
    SessionInvalidError,
    TooManyAttemptsError,
)
from jarvis_web.core.store import KeyValueStore
from jarvis_web.core.telegram import OTPDeliveryChannel
from jarvis_web.core.tokens import TokenCodec, token_digest
from jarvis_web.services.password_gate import PasswordGate

logger = logging.getLogger(__name__)

DEFAULT_OTP_TTL = timedelta(minutes=5)
DEFAULT_SESSION_TTL = timedelta(days=7)
DEFAULT_MAX_ATTEMPTS = 5

CODE_LENGTH = 6
_CODE_MIN = 100_000
_CODE_SPAN = 900_000
_CODE_PATTERN = re.compile(r"[0-9]{6}")


def generate_code() -> str:
    """Uniform 6-digit code in 100000-999999 from the OS CSPRNG."""
    return str(_CODE_MIN + secrets.randbelow(_CODE_SPAN))


def _attempts_key(digest: str) -> str:
    return f"otp-attempts:{digest}"


def _spent_key(digest: str) -> str:
    return f"otp-spent:{digest}"


class OTPIssuer:
    """Create a challenge and push its code out of band.

    Args:
        codec: OTP-token codec.
        channel: Delivery channel for the code.
        ttl: Challenge lifetime.
    """

    def __init__(
        self,
        *,
        codec: TokenCodec,
        channel: OTPDeliveryChannel,
        ttl: timedelta = DEFAULT_OTP_TTL,
    ) -> None:
        self._codec = codec
        self._channel = channel
        self._ttl = ttl

    async def issue(self) -> str:
        """Generate, sign and deliver a new code.

        Returns:
            The OTP token the client must echo back.

        Raises:
            DeliveryFailedError: The channel did not accept the code. The
                token is discarded, so no usable challenge exists.
        """
        code = generate_code()
        nonce = secrets.token_urlsafe(16)
        token = self._codec.sign(
            {"jti": nonce, "code": self._codec.fingerprint(f"{nonce}:{code}")},
            self._ttl,
        )

        if not await self._channel.send(code):
            logger.warning("OTP delivery failed; challenge discarded")
            raise DeliveryFailedError()

        logger.info("OTP issued")
        return token


class OTPVerifier:
    """Check a submitted code and exchange it for a session token.

    Args:
        gate: Password gate, used for the credential re-check only.
        otp_codec: Codec the challenge tokens were signed with.
        session_codec: Codec for the issued session token.
        store: Shared store for attempt counters and spent markers.
        subject: Fixed principal identity put in session tokens.
        otp_ttl: Challenge lifetime (bounds the store records).
        session_ttl: Session token lifetime.
        max_attempts: Attempts allowed per challenge.
    """

    def __init__(
        self,
        *,
        gate: PasswordGate,
        otp_codec: TokenCodec,
        session_codec: TokenCodec,
        store: KeyValueStore,
        subject: str,
        otp_ttl: timedelta = DEFAULT_OTP_TTL,
        session_ttl: timedelta = DEFAULT_SESSION_TTL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._gate = gate
        self._otp_codec = otp_codec
        self._session_codec = session_codec
        self._store = store
        self._subject = subject
        self._otp_ttl = otp_ttl
        self._session_ttl = session_ttl
        self._max_attempts = max_attempts

    def verify(self, *, otp: str, password: str, otp_token: str | None) -> str:
        """Run the verification checks in order; the first failure wins.

        Returns:
            A freshly issued session token.

        Raises:
            SessionInvalidError: Password re-check failed.
            InvalidFormatError: Code is not exactly 6 digits.
            NoPendingChallengeError: Token missing or already spent.
            InvalidSignatureError: Token is not a genuine OTP token.
            TooManyAttemptsError: Attempt ceiling exceeded.
            ExpiredError: Challenge lifetime is over.
            InvalidCodeError: Code mismatch; the challenge stays usable.
        """
        if not self._gate.matches(password):
            logger.warning("OTP verification with wrong password")
            raise SessionInvalidError()

        if not _CODE_PATTERN.fullmatch(otp):
            raise InvalidFormatError()

        if not otp_token:
            raise NoPendingChallengeError()

        claims = self._otp_codec.decode(otp_token)
        digest = token_digest(otp_token)
        if self._store.get(_spent_key(digest)):
            raise NoPendingChallengeError()

        attempts = self._store.increment(_attempts_key(digest), ttl=self._otp_ttl)
        if attempts > self._max_attempts:
            self._spend(digest)
            logger.warning("OTP attempt ceiling reached")
            raise TooManyAttemptsError()

        try:
            self._otp_codec.check_expiry(claims)
        except ExpiredError:
            self._spend(digest)
            raise ExpiredError("Code expired. Please request a new code.") from None

        nonce = claims.get("jti")
        expected = claims.get("code")
        if not isinstance(nonce, str) or not isinstance(expected, str):
            raise NoPendingChallengeError()
        if not secrets_match(self._otp_codec.fingerprint(f"{nonce}:{otp}"), expected):
            logger.info("Incorrect OTP (attempt %d/%d)", attempts, self._max_attempts)
            raise InvalidCodeError()

        self._spend(digest)
        logger.info("OTP verified; session issued")
        return issue_session_token(
            self._session_codec, subject=self._subject, ttl=self._session_ttl
        )

    def _spend(self, digest: str) -> None:
        self._store.set(_spent_key(digest), True, ttl=self._otp_ttl)
        self._store.delete(_attempts_key(digest))
