"""Fixed-window request counter keyed by caller identity.

Each key gets a window that starts on its first request and lasts
``window_seconds``. Requests inside the window increment the count; the
first request after the window elapses starts a fresh one. A background
sweep evicts expired windows to bound memory.

The check-and-increment-or-reset sequence runs under a single
``threading.Lock`` so it stays atomic whether callers are coroutines on
one loop or threads sharing the limiter. The sweep takes the same lock.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 300.0


@dataclass
class RateWindowEntry:
    """Per-key state for the current window."""

    count: int
    window_start: float
    window_seconds: float
    max_requests: int

    @property
    def reset_at(self) -> float:
        return self.window_start + self.window_seconds

    def expired(self, now: float) -> bool:
        return now - self.window_start >= self.window_seconds


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of ``RateLimiter.check_and_increment``."""

    allowed: bool
    remaining: int
    reset_at: float
    limit: int
    checked_at: float = 0.0

    def retry_after(self, now: float | None = None) -> int:
        """Whole seconds until the window resets (never negative).

        Measured from *now* when given, otherwise from the limiter clock
        reading taken when the decision was made.
        """
        if now is None:
            now = self.checked_at
        return max(0, math.ceil(self.reset_at - now))


class RateLimiter:
    """Concurrency-safe fixed-window rate limiter.

    Usage:
        limiter = RateLimiter()
        decision = limiter.check_and_increment("user-42", max_requests=10, window_seconds=60)
        if not decision.allowed:
            ...

    ``start()`` launches the periodic sweep on the running event loop;
    ``close()`` cancels it and clears the table.
    """

    def __init__(
        self,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[str, RateWindowEntry] = {}
        self._lock = threading.Lock()
        self._sweep_task: asyncio.Task[None] | None = None

    def check_and_increment(
        self, key: str, max_requests: int, window_seconds: float
    ) -> RateLimitDecision:
        """Count one request for *key* and report whether it is allowed."""
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)

            if entry is None or entry.expired(now):
                entry = RateWindowEntry(
                    count=1,
                    window_start=now,
                    window_seconds=window_seconds,
                    max_requests=max_requests,
                )
                self._entries[key] = entry
                return RateLimitDecision(
                    allowed=True,
                    remaining=max_requests - 1,
                    reset_at=entry.reset_at,
                    limit=max_requests,
                    checked_at=now,
                )

            entry.count += 1
            return RateLimitDecision(
                allowed=entry.count <= max_requests,
                remaining=max(0, max_requests - entry.count),
                reset_at=entry.reset_at,
                limit=max_requests,
                checked_at=now,
            )

    def sweep(self) -> int:
        """Evict every entry whose window has fully elapsed.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Rate limiter swept expired windows", extra={"evicted": len(expired)})
        return len(expired)

    def get(self, key: str) -> RateWindowEntry | None:
        """Return a copy of the entry for *key*, if any."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            return RateWindowEntry(
                count=entry.count,
                window_start=entry.window_start,
                window_seconds=entry.window_seconds,
                max_requests=entry.max_requests,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ── Sweep lifecycle ─────────────────────────────────────────

    @property
    def sweeping(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def start(self) -> None:
        """Start the periodic sweep on the running loop (idempotent)."""
        if self.sweeping:
            return
        self._sweep_task = asyncio.get_running_loop().create_task(
            self._sweep_loop(), name="rate-limit-sweep"
        )

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep()

    async def close(self) -> None:
        """Cancel the sweep task and drop all windows."""
        task, self._sweep_task = self._sweep_task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        with self._lock:
            self._entries.clear()


def rate_limit_headers(decision: RateLimitDecision) -> dict[str, str]:
    """Per-caller rate-limit response headers for the surrounding application."""
    return {
        "X-RateLimit-Limit-User": str(decision.limit),
        "X-RateLimit-Remaining-User": str(decision.remaining),
        "X-RateLimit-Reset-User": str(math.ceil(decision.reset_at)),
    }
