"""Rate Limiter — fixed-window request counting per client IP, as a FastAPI dependency.

Invariants:
    - At most max_requests per client within one window; the next request gets
      429 RATE_LIMITED with retryAfter = seconds until the window resets
    - Each limiter owns its cache: register and login windows never share counts
    - Memory is bounded: entries expire with their window and the cache has a maxsize

Design Decisions:
    - cachetools.TTLCache instead of a plain dict: expiry and eviction come for free
    - Process-local state: a single uvicorn worker serves the API; a multi-worker
      deployment would need a shared store
"""

import math
import time
from dataclasses import dataclass

from cachetools import TTLCache
from fastapi import Request

from cctv_api.core.errors import RateLimitedError

MAX_TRACKED_CLIENTS = 10_000


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._windows: TTLCache = TTLCache(maxsize=MAX_TRACKED_CLIENTS, ttl=window_seconds)

    def hit(self, identifier: str, now: float | None = None) -> None:
        """Count one request; raises RateLimitedError once the window is full."""
        now = time.monotonic() if now is None else now
        window = self._windows.get(identifier)
        if window is None or now > window.reset_at:
            self._windows[identifier] = _Window(count=1, reset_at=now + self.window_seconds)
            return
        if window.count >= self.max_requests:
            raise RateLimitedError(math.ceil(window.reset_at - now))
        window.count += 1

    def clear(self) -> None:
        self._windows.clear()

    async def __call__(self, request: Request) -> None:
        client = request.client.host if request.client else "unknown"
        self.hit(client)


register_limiter = RateLimiter(max_requests=3, window_seconds=60)
login_limiter = RateLimiter(max_requests=10, window_seconds=60)
