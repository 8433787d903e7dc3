import time
from collections import deque
from typing import Callable, Deque, Dict, Hashable


class RateLimiter:
    """Simple in-memory rate limiter (caller key -> request timestamps).

    Keys with no hits inside the window are dropped, either when they are next
    seen or by a sweep that runs at most once per window, so memory follows the
    number of recently active callers rather than every caller ever seen.
    """

    def __init__(self, max_requests: int = 20, window: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._hits: Dict[Hashable, Deque[float]] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._hits)

    def _prune(self, hits: Deque[float], now: float) -> None:
        while hits and hits[0] <= now - self.window:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        for key in list(self._hits):
            hits = self._hits[key]
            self._prune(hits, now)
            if not hits:
                del self._hits[key]
        self._last_sweep = now

    def is_limited(self, key: Hashable) -> bool:
        """Return True if this request exceeds the limit; otherwise record it."""
        now = self._clock()
        if now - self._last_sweep >= self.window:
            self._sweep(now)

        hits = self._hits.get(key)
        if hits is None:
            hits = self._hits[key] = deque()
        else:
            self._prune(hits, now)
        if len(hits) >= self.max_requests:
            return True
        hits.append(now)
        return False
