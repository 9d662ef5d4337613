"""Fixed-window rate limiting for the public invite validation endpoint.

State is process-local. Callers only use the ``RateLimiter.hit`` interface,
so a shared counter (e.g. Redis INCR + EXPIRE) can replace
``InMemoryRateLimiter`` without touching call sites.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from tripshare.config import settings
from tripshare.errors import RateLimitError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: int  # seconds until the current window resets


class RateLimiter(Protocol):
    def hit(self, key: str, window_seconds: int, limit: int) -> RateLimitResult:
        """Count one request for ``key`` and report whether it is within budget."""
        ...


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter:
    """Fixed-window counter keyed by client identity."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def hit(self, key: str, window_seconds: int, limit: int) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or now >= entry.reset_at:
                # Lazy purge: a stale window is replaced on next use
                entry = _Window(count=0, reset_at=now + window_seconds)
                self._entries[key] = entry

            retry_after = max(1, math.ceil(entry.reset_at - now))
            if entry.count >= limit:
                return RateLimitResult(allowed=False, remaining=0, retry_after=retry_after)

            entry.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=limit - entry.count,
                retry_after=retry_after,
            )

    def sweep(self) -> int:
        """Drop every window that has ended. Returns the number removed."""
        now = self._clock()
        with self._lock:
            stale = [k for k, e in self._entries.items() if now >= e.reset_at]
            for k in stale:
                del self._entries[k]
        return len(stale)

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RateLimitSweeper:
    """Background thread that periodically purges expired rate-limit windows."""

    def __init__(self, limiter: InMemoryRateLimiter, interval_seconds: float):
        self._limiter = limiter
        self._interval = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="rate-limit-sweeper")
        self._thread.start()
        logger.info("Rate limit sweeper started (every %ss)", self._interval)

    def stop(self) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5)
        logger.info("Rate limit sweeper stopped")

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            removed = self._limiter.sweep()
            if removed:
                logger.debug("Purged %d expired rate limit window(s)", removed)


# Module-level singletons, wired into the app lifespan
rate_limiter = InMemoryRateLimiter()
sweeper = RateLimitSweeper(rate_limiter, settings.rate_limit_sweep_seconds)


def enforce_rate_limit(key: str, limiter: RateLimiter = rate_limiter) -> RateLimitResult:
    """Count a validation attempt for ``key``; raise RateLimitError when over budget."""
    result = limiter.hit(
        key,
        settings.rate_limit_window_seconds,
        settings.rate_limit_max_requests,
    )
    if not result.allowed:
        logger.warning("Rate limit exceeded for %s", key)
        raise RateLimitError("Too many attempts. Please try again later", retry_after=result.retry_after)
    return result
