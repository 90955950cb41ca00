"""Key-value store for short-lived auth state.

Holds the login attempt counters and the per-OTP-token attempt counters and
spent markers. Services only use get/set/delete/increment, so the in-memory
store can be swapped for an external cache (Redis with key TTLs) in a
multi-process deployment without touching them.

Note: The in-memory implementation is safe for async/await usage
(single-threaded event loop) but not for multi-threaded access. Increments
from concurrent requests are not serialized beyond what the event loop
gives for free.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

Clock = Callable[[], datetime]

_SWEEP_INTERVAL = timedelta(minutes=1)


def utcnow() -> datetime:
    """Default clock: timezone-aware current UTC time."""
    return datetime.now(UTC)


class KeyValueStore(Protocol):
    """Narrow store interface shared by the gate and the verifier."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl: timedelta | None = None) -> None: ...

    def delete(self, key: str) -> None: ...

    def increment(self, key: str, ttl: timedelta | None = None) -> int: ...


@dataclass
class _Entry:
    value: Any
    expires_at: datetime | None


class InMemoryStore:
    """Process-memory KeyValueStore with TTL expiry.

    Expired entries are dropped when read, and swept in bulk at most once
    per sweep interval on write, so keys that are never read again (spent
    OTP markers) do not accumulate. Entries without a TTL live until the
    process restarts.
    """

    def __init__(
        self, clock: Clock = utcnow, sweep_interval: timedelta = _SWEEP_INTERVAL
    ) -> None:
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._data: dict[str, _Entry] = {}
        self._next_sweep = clock() + sweep_interval

    def get(self, key: str) -> Any | None:
        """Return the value for *key*, or None if missing or expired."""
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            del self._data[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl: timedelta | None = None) -> None:
        """Store *value* under *key*, replacing any previous entry."""
        now = self._clock()
        if now >= self._next_sweep:
            self.cleanup_expired()
            self._next_sweep = now + self._sweep_interval
        expires_at = now + ttl if ttl is not None else None
        self._data[key] = _Entry(value=value, expires_at=expires_at)

    def delete(self, key: str) -> None:
        """Remove *key*. Missing keys are ignored."""
        self._data.pop(key, None)

    def increment(self, key: str, ttl: timedelta | None = None) -> int:
        """Add one to the integer at *key* and return the new value.

        A missing or expired key starts from zero and takes *ttl*; an
        existing key keeps its original expiry.
        """
        current = self.get(key)
        if current is None:
            self.set(key, 1, ttl)
            return 1
        entry = self._data[key]
        entry.value = int(current) + 1
        return entry.value

    def cleanup_expired(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        expired = [
            key
            for key, entry in self._data.items()
            if entry.expires_at is not None and now >= entry.expires_at
        ]
        for key in expired:
            del self._data[key]
        return len(expired)

    def __len__(self) -> int:
        """Number of live (unexpired) entries."""
        self.cleanup_expired()
        return len(self._data)

    def clear(self) -> None:
        """Clear all entries (for testing)."""
        self._data.clear()
