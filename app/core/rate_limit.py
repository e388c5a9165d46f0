# app/core/rate_limit.py
"""
Fixed-window rate limiting for the public listing.

The counter store is injected so a multi-process deployment can plug in a
shared counter service; the default store is an in-process dict guarded by
a lock. Expired windows are reset lazily on the next hit and also evicted
by a periodic sweep (see RateLimiter.run_sweeper, started in app.main).
"""
import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from fastapi import Depends, Request

from app.core.config import get_settings
from app.core.errors import RateLimitError

logger = logging.getLogger(__name__)

settings = get_settings()


@dataclass
class Window:
    count: int
    reset_at: float


class RateLimitStore(Protocol):
    def hit(self, key: str, window_seconds: float, now: float) -> Window:
        """Count one request for key and return the current window."""
        ...

    def sweep(self, now: float) -> int:
        """Drop expired windows; return how many were removed."""
        ...


class InMemoryRateLimitStore:
    """Single-process store."""

    def __init__(self) -> None:
        self._windows: dict[str, Window] = {}
        self._lock = threading.Lock()

    def hit(self, key: str, window_seconds: float, now: float) -> Window:
        with self._lock:
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                window = Window(count=1, reset_at=now + window_seconds)
                self._windows[key] = window
            else:
                window.count += 1
            return Window(window.count, window.reset_at)

    def sweep(self, now: float) -> int:
        with self._lock:
            expired = [k for k, w in self._windows.items() if now > w.reset_at]
            for key in expired:
                del self._windows[key]
            return len(expired)

    def __len__(self) -> int:
        return len(self._windows)


class RateLimiter:
    """
    Allow at most `max_requests` per `window_seconds` per key.
    """

    def __init__(
        self,
        store: RateLimitStore,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock

    def check(self, key: str) -> None:
        """
        Raises:
            RateLimitError(429): if key exceeded its quota for this window.
        """
        now = self.clock()
        window = self.store.hit(key, self.window_seconds, now)
        if window.count > self.max_requests:
            retry_after = max(1, int(window.reset_at - now) + 1)
            logger.warning("Rate limit exceeded for %s", key)
            raise RateLimitError(retry_after=retry_after)

    def sweep(self) -> int:
        return self.store.sweep(self.clock())

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Evict expired windows every `interval_seconds` until cancelled."""
        while True:
            await asyncio.sleep(interval_seconds)
            removed = self.sweep()
            if removed:
                logger.debug("Rate limiter swept %d expired windows", removed)


def client_address(request: Request) -> str:
    """
    Key for rate limiting: first X-Forwarded-For hop, then X-Real-IP,
    then the socket peer.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


public_listing_limiter = RateLimiter(
    InMemoryRateLimitStore(),
    max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
)


def get_public_listing_limiter() -> RateLimiter:
    return public_listing_limiter


def enforce_public_rate_limit(
    request: Request,
    limiter: RateLimiter = Depends(get_public_listing_limiter),
) -> None:
    limiter.check(client_address(request))
