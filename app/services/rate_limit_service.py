"""
Per-client fixed-window rate limiting.

Counting is delegated to the `limits` package (the engine behind slowapi) with
in-memory storage, so limits are per server process and reset on restart.
A client's window opens on its first request and restarts on the first
request after it expires.
"""

import math
import time
from typing import Optional

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter
from starlette.requests import Request


class RateLimiter:
    """Fixed window counter keyed by client identity."""

    def __init__(self, max_requests: int = 100, window_seconds: int = 60):
        self.max_requests = max_requests
        self.window_seconds = int(window_seconds)
        self.item = RateLimitItemPerSecond(max_requests, self.window_seconds)
        self.storage = MemoryStorage()
        self.strategy = FixedWindowRateLimiter(self.storage)

    def hit(self, key: str) -> bool:
        """Record one request for key. Returns False when the request must be rejected."""
        return self.strategy.hit(self.item, key)

    def retry_after(self, key: str) -> int:
        """Whole seconds until the client's current window resets."""
        stats = self.strategy.get_window_stats(self.item, key)
        return max(0, math.ceil(stats.reset_time - time.time()))


def client_key(request: Request) -> str:
    """
    Client identity for rate limiting.

    First hop of X-Forwarded-For when present, otherwise the peer address.
    """
    forwarded: Optional[str] = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
