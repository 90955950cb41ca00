"""Password gate with per-address lockout.

The single shared password is checked before anything else in the login
flow. Failed attempts are counted per client address; reaching the
threshold locks the address out for a fixed window, during which even the
correct password is refused.

Counters never expire and are never pruned. For a single-user deployment
the number of distinct addresses stays small.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from jarvis_web.core.auth import secrets_match
from jarvis_web.core.errors import InvalidCredentialError, RateLimitedError
from jarvis_web.core.store import Clock, KeyValueStore, utcnow

logger = logging.getLogger(__name__)

DEFAULT_MAX_FAILURES = 5
DEFAULT_LOCKOUT = timedelta(minutes=15)


@dataclass
class LoginAttempts:
    """Failure counter for one client address.

    Attributes:
        count: Consecutive failures since the last success.
        blocked_until: End of the current lockout, if one was armed.
    """

    count: int = 0
    blocked_until: datetime | None = None


class PasswordGate:
    """Validate the shared password and enforce address lockout.

    Args:
        password: Configured credential.
        store: Shared store holding LoginAttempts under ``login:<address>``.
        max_failures: Failures that arm the lockout.
        lockout: Lockout duration.
        clock: Source of the current UTC time.
    """

    def __init__(
        self,
        *,
        password: str,
        store: KeyValueStore,
        max_failures: int = DEFAULT_MAX_FAILURES,
        lockout: timedelta = DEFAULT_LOCKOUT,
        clock: Clock = utcnow,
    ) -> None:
        self._password = password
        self._store = store
        self._max_failures = max_failures
        self._lockout = lockout
        self._clock = clock

    @staticmethod
    def _key(address: str) -> str:
        return f"login:{address}"

    def attempts_for(self, address: str) -> LoginAttempts | None:
        """Return the current counter for *address*, if any."""
        return self._store.get(self._key(address))

    def matches(self, password: str) -> bool:
        """Constant-time check against the configured credential.

        No counter side effects; used for the re-check at OTP time.
        """
        return secrets_match(password, self._password)

    def check(self, password: str, address: str) -> None:
        """Validate a login attempt from *address*.

        Raises:
            RateLimitedError: Address is locked out (password not examined).
            InvalidCredentialError: Password mismatch; failure recorded.
        """
        now = self._clock()
        attempts = self.attempts_for(address)

        if attempts and attempts.blocked_until and now < attempts.blocked_until:
            remaining = (attempts.blocked_until - now).total_seconds()
            raise RateLimitedError(retry_after=math.ceil(remaining))

        if not self.matches(password):
            self._record_failure(address, attempts, now)
            raise InvalidCredentialError()

        self._store.delete(self._key(address))

    def _record_failure(
        self, address: str, attempts: LoginAttempts | None, now: datetime
    ) -> None:
        attempts = attempts or LoginAttempts()
        attempts.count += 1
        if attempts.count >= self._max_failures:
            attempts.blocked_until = now + self._lockout
            logger.warning(
                "Login locked out: ip=%s until=%s",
                address,
                attempts.blocked_until.isoformat(),
            )
        else:
            logger.warning(
                "Failed login attempt: ip=%s (%d/%d)",
                address,
                attempts.count,
                self._max_failures,
            )
        self._store.set(self._key(address), attempts)
