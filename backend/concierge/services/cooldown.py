"""Per-email cooldown between detailed skin analysis reports."""
from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from datetime import datetime, timezone

from concierge.core.config import DAY_MS
from concierge.services.rate_limit import Clock, now_ms


@dataclass(frozen=True, slots=True)
class CooldownStatus:
    allowed: bool
    remaining_ms: int = 0
    next_available_at: datetime | None = None

    @property
    def remaining_days(self) -> int:
        return math.ceil(self.remaining_ms / DAY_MS)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class ReportCooldownStore:
    """Remember when each email last received a report."""

    def __init__(self, *, cooldown_ms: int, clock: Clock = now_ms) -> None:
        self._cooldown_ms = cooldown_ms
        self._clock = clock
        self._last_seen: dict[str, int] = {}
        self._lock = threading.Lock()

    @classmethod
    def for_days(cls, days: int, *, clock: Clock = now_ms) -> "ReportCooldownStore":
        return cls(cooldown_ms=days * DAY_MS, clock=clock)

    def check(self, email: str) -> CooldownStatus:
        with self._lock:
            return self._status(normalize_email(email), self._clock())

    def record(self, email: str) -> None:
        with self._lock:
            self._last_seen[normalize_email(email)] = self._clock()

    def acquire(self, email: str) -> CooldownStatus:
        """Check and, when allowed, record in one step."""

        key = normalize_email(email)
        with self._lock:
            now = self._clock()
            status = self._status(key, now)
            if status.allowed:
                self._last_seen[key] = now
            return status

    def _status(self, key: str, now: int) -> CooldownStatus:
        last = self._last_seen.get(key)
        if last is None or now - last >= self._cooldown_ms:
            return CooldownStatus(allowed=True)
        next_at = last + self._cooldown_ms
        return CooldownStatus(
            allowed=False,
            remaining_ms=next_at - now,
            next_available_at=datetime.fromtimestamp(next_at / 1000, tz=timezone.utc),
        )
