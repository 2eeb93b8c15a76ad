from __future__ import annotations

import time
from typing import Callable, Dict, List


class RateLimiter:
    """
    Sliding window per connection id: at most `max_requests` intents in any
    `window_ms` span. Rejected intents do not count toward the window.
    """

    def __init__(self, window_ms: int = 1000, max_requests: int = 10,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.window_sec = window_ms / 1000.0
        self.max_requests = max_requests
        self.clock = clock
        self._hits: Dict[str, List[float]] = {}

    def is_limited(self, key: str) -> bool:
        now = self.clock()
        cutoff = now - self.window_sec
        hits = [t for t in self._hits.get(key, ()) if t > cutoff]
        if len(hits) >= self.max_requests:
            self._hits[key] = hits
            return True
        hits.append(now)
        self._hits[key] = hits
        return False

    def forget(self, key: str) -> None:
        self._hits.pop(key, None)

    def purge_stale(self, stale_after_sec: float = 60) -> int:
        cutoff = self.clock() - stale_after_sec
        stale = [k for k, hits in self._hits.items() if not hits or hits[-1] < cutoff]
        for k in stale:
            del self._hits[k]
        return len(stale)

    def __len__(self) -> int:
        return len(self._hits)
