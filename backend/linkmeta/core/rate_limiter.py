import time
from collections import deque
from typing import Callable


class RateLimitInfo:
    """Rate limit check result with metadata for response headers."""

    __slots__ = ("allowed", "remaining", "limit", "reset")

    def __init__(self, allowed: bool, remaining: int, limit: int, reset: int):
        self.allowed = allowed
        self.remaining = remaining
        self.limit = limit
        self.reset = reset  # Unix timestamp when the window resets


class SlidingWindowLimiter:
    """In-process sliding window limiter keyed by an arbitrary string (client IP)."""

    def __init__(self, limit: int, window: int, clock: Callable[[], float] = time.time):
        self.limit = limit
        self.window = window
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._last_sweep = clock()

    def check(self, key: str) -> RateLimitInfo:
        now = self._clock()
        if now - self._last_sweep >= self.window:
            self._sweep(now)
        hits = self._hits.setdefault(key, deque())

        # Drop requests that fell out of the window
        while hits and hits[0] <= now - self.window:
            hits.popleft()

        reset_at = int((hits[0] if hits else now) + self.window)
        if len(hits) >= self.limit:
            return RateLimitInfo(allowed=False, remaining=0, limit=self.limit, reset=reset_at)

        hits.append(now)
        return RateLimitInfo(
            allowed=True,
            remaining=self.limit - len(hits),
            limit=self.limit,
            reset=reset_at,
        )

    def _sweep(self, now: float) -> None:
        """Forget keys with no hits left in the window. Runs at most once per window."""
        self._last_sweep = now
        cutoff = now - self.window
        for key in list(self._hits):
            hits = self._hits[key]
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if not hits:
                del self._hits[key]

    def tracked_keys(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        self._hits.clear()
