from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Protocol

from ..common.locks import KeyedLocks
from ..core.constants import BIOMETRIC_MAX_ATTEMPTS, BIOMETRIC_WINDOW_SECONDS


class AttemptStore(Protocol):
    """Concurrency-safe counter of recent attempts per key.

    ``try_record`` must be an atomic read-modify-write: prune attempts older than
    ``window_seconds``, refuse once ``limit`` are left, otherwise record ``at``.
    """

    def try_record(self, key: str, at: float, *, window_seconds: float, limit: int) -> bool:
        raise NotImplementedError

    def clear(self, key: str) -> None:
        raise NotImplementedError


class InMemoryAttemptStore(AttemptStore):
    """Process-local store guarded by one lock per key."""

    def __init__(self):
        self._locks = KeyedLocks()
        self._attempts: Dict[str, List[float]] = {}

    def try_record(self, key: str, at: float, *, window_seconds: float, limit: int) -> bool:
        with self._locks.hold(key):
            recent = [t for t in self._attempts.get(key, ()) if at - t < window_seconds]
            if len(recent) >= limit:
                self._attempts[key] = recent
                return False
            recent.append(at)
            self._attempts[key] = recent
            return True

    def clear(self, key: str) -> None:
        with self._locks.hold(key):
            self._attempts.pop(key, None)


class BiometricRateLimiter:
    """Sliding-window limit on verification attempts per staff member.

    Applied before the hash comparison, independent of the match result.
    """

    def __init__(
        self,
        store: AttemptStore | None = None,
        *,
        max_attempts: int = BIOMETRIC_MAX_ATTEMPTS,
        window_seconds: float = BIOMETRIC_WINDOW_SECONDS,
    ):
        self._store = store or InMemoryAttemptStore()
        self._max_attempts = int(max_attempts)
        self._window_seconds = float(window_seconds)

    def allow(self, staff_id: str, *, now: datetime) -> bool:
        return self._store.try_record(
            staff_id,
            now.timestamp(),
            window_seconds=self._window_seconds,
            limit=self._max_attempts,
        )

    def reset(self, staff_id: str) -> None:
        self._store.clear(staff_id)
