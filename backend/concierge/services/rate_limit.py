"""In-memory fixed-window rate limiter keyed by caller identity."""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, replace
from typing import Callable

GLOBAL_KEY = "global"

Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(slots=True)
class RateBucket:
    key: str
    window_start: int
    count: int


@dataclass(frozen=True, slots=True)
class RateDecision:
    allowed: bool
    remaining: int
    reset_in_ms: int


class FixedWindowCounter:
    """Count requests per key inside a window that restarts on first use after expiry.

    Every call is counted, including calls that end up denied. Buckets live
    for the lifetime of the counter and are never evicted.
    """

    def __init__(self, *, clock: Clock = now_ms) -> None:
        self._clock = clock
        self._buckets: dict[str, RateBucket] = {}
        self._lock = threading.Lock()

    def check(self, key: str | None, *, window_ms: int, max_requests: int) -> RateDecision:
        key = key or GLOBAL_KEY
        with self._lock:
            now = self._clock()
            bucket = self._buckets.get(key)
            if bucket is None or now - bucket.window_start >= window_ms:
                # new window; this call is the first one in it
                bucket = RateBucket(key=key, window_start=now, count=1)
                self._buckets[key] = bucket
            else:
                bucket.count += 1

            return RateDecision(
                allowed=bucket.count <= max_requests,
                remaining=max(max_requests - bucket.count, 0),
                reset_in_ms=max(window_ms - (now - bucket.window_start), 0),
            )

    def peek(self, key: str) -> RateBucket | None:
        """Return a copy of the bucket for ``key`` without counting a request."""

        with self._lock:
            bucket = self._buckets.get(key)
            return replace(bucket) if bucket is not None else None

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def __len__(self) -> int:
        return len(self._buckets)
