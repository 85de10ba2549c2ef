"""In-memory sliding window rate limiter for public auth endpoints."""

import math
import time
from collections import defaultdict, deque
from threading import Lock


class RateLimiter:
    def __init__(self, max_attempts: int, window_seconds: float, clock=time.monotonic):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._attempts: dict[str, deque] = defaultdict(deque)
        self._lock = Lock()

    def _prune(self, key: str, now: float) -> deque:
        attempts = self._attempts[key]
        while attempts and now - attempts[0] >= self.window_seconds:
            attempts.popleft()
        return attempts

    def is_allowed(self, key: str) -> bool:
        """Record an attempt for ``key`` and report whether it is within the limit."""
        with self._lock:
            now = self._clock()
            attempts = self._prune(key, now)
            if len(attempts) >= self.max_attempts:
                return False
            attempts.append(now)
            return True

    def get_retry_after(self, key: str) -> int:
        """Seconds until ``key`` may try again (0 if it may try now)."""
        with self._lock:
            now = self._clock()
            attempts = self._prune(key, now)
            if len(attempts) < self.max_attempts:
                return 0
            return max(1, math.ceil(self.window_seconds - (now - attempts[0])))

    def reset(self) -> None:
        with self._lock:
            self._attempts.clear()


# 10 attempts per IP per minute on login / registration
auth_limiter = RateLimiter(max_attempts=10, window_seconds=60)
