from __future__ import annotations

import time
from collections import defaultdict, deque


class SlidingWindowLimiter:
    """In-process sliding window counter, keyed by caller and endpoint."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._buckets: dict[str, deque[float]] = defaultdict(deque)

    def hit(self, key: str, limit: int, window_sec: int) -> bool:
        """Returns True if allowed, False if rate-limited."""
        now = self._clock()
        q = self._buckets[key]

        cutoff = now - window_sec
        while q and q[0] <= cutoff:
            q.popleft()

        if len(q) >= limit:
            return False

        q.append(now)
        return True

    def reset(self) -> None:
        self._buckets.clear()


def limits_for(endpoint: str, configured) -> tuple[int, int]:
    """Pick (limit, window_sec) for an endpoint from AUTH_RATE_LIMITS."""
    table = {name: (limit, window) for name, limit, window in configured}
    return table.get(endpoint) or table.get("default", (20, 60))


limiter = SlidingWindowLimiter()
