"""Sliding-window limiter for failed credential checks. State lives in memory only."""

from __future__ import annotations

import time
from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class InMemoryRateLimiter:
    """Count failed attempts per key inside a sliding window.

    Every check-and-mutate sequence is synchronous, so it is safe under the
    event loop without locking. Not safe across OS threads.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._attempts: dict[str, deque[float]] = {}

    def _prune(self, key: str, window_seconds: int) -> deque[float] | None:
        attempts = self._attempts.get(key)
        if attempts is None:
            return None
        cutoff = self._clock() - window_seconds
        while attempts and attempts[0] <= cutoff:
            attempts.popleft()
        if not attempts:
            del self._attempts[key]
            return None
        return attempts

    def failures(self, key: str, window_seconds: int) -> int:
        attempts = self._prune(key, window_seconds)
        return 0 if attempts is None else len(attempts)

    def is_limited(self, key: str, limit: int, window_seconds: int) -> tuple[bool, int]:
        """Return ``(limited, retry_after_seconds)`` for ``key``."""
        attempts = self._prune(key, window_seconds)
        if attempts is None or len(attempts) < limit:
            return False, 0
        retry_after = int(attempts[0] + window_seconds - self._clock()) + 1
        return True, max(retry_after, 1)

    def add_failure(self, key: str, window_seconds: int) -> None:
        self._prune(key, window_seconds)
        self._attempts.setdefault(key, deque()).append(self._clock())

    def clear(self, key: str) -> None:
        self._attempts.pop(key, None)
