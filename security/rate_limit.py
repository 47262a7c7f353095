import math
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Optional


@dataclass
class AdmissionCounter:
    count: int
    window_started_at: float
    blocked_until: float
    last_seen_at: float


@dataclass(frozen=True)
class AdmissionDecision:
    allowed: bool
    retry_after: int = 0


class AdmissionLimiter:
    """
    Fixed-window request counter per "<bucket>:<ip>", with a hard block once a
    bucket's limit is exceeded.

    State lives in process memory only: it is lost on restart and every server
    instance enforces its own limits.
    """

    def __init__(
        self,
        limits: Dict[str, int],
        window_seconds: int = 60,
        block_seconds: int = 300,
        sweep_interval_seconds: int = 30,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.limits = dict(limits)
        self.window_seconds = window_seconds
        self.block_seconds = block_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock or time.time
        self._entries: Dict[str, AdmissionCounter] = {}
        self._lock = Lock()
        self._last_sweep = self._clock()

    @classmethod
    def from_config(cls, config, clock=None) -> "AdmissionLimiter":
        return cls(
            limits=config.get("RATE_LIMITS", {}),
            window_seconds=config.get("RATE_LIMIT_WINDOW_SECONDS", 60),
            block_seconds=config.get("RATE_LIMIT_BLOCK_SECONDS", 300),
            sweep_interval_seconds=config.get("RATE_LIMIT_SWEEP_SECONDS", 30),
            clock=clock,
        )

    def hit(self, bucket: str, ip: str) -> AdmissionDecision:
        """
        Counts one request and says whether it may proceed.
        """
        limit = self.limits[bucket]
        key = f"{bucket}:{ip}"

        with self._lock:
            now = self._clock()
            self._maybe_sweep(now)

            entry = self._entries.get(key)
            if entry is None:
                entry = AdmissionCounter(count=0, window_started_at=now, blocked_until=0.0, last_seen_at=now)
                self._entries[key] = entry

            entry.last_seen_at = now

            if entry.blocked_until > now:
                return AdmissionDecision(False, self._seconds_until(entry.blocked_until, now))

            if now - entry.window_started_at >= self.window_seconds:
                entry.count = 0
                entry.window_started_at = now
                entry.blocked_until = 0.0

            entry.count += 1
            if entry.count > limit:
                entry.blocked_until = now + self.block_seconds
                return AdmissionDecision(False, self._seconds_until(entry.blocked_until, now))

            return AdmissionDecision(True)

    def snapshot(self, bucket: str, ip: str) -> Optional[AdmissionCounter]:
        """
        Copy of the counter for one bucket and ip, or None. For inspection only.
        """
        with self._lock:
            entry = self._entries.get(f"{bucket}:{ip}")
            if entry is None:
                return None
            return AdmissionCounter(**vars(entry))

    def sweep(self) -> int:
        with self._lock:
            return self._sweep(self._clock())

    def _maybe_sweep(self, now: float):
        if now - self._last_sweep < self.sweep_interval_seconds:
            return
        self._sweep(now)

    def _sweep(self, now: float) -> int:
        self._last_sweep = now
        stale_after = 2 * max(self.window_seconds, self.block_seconds)
        stale = [
            key
            for key, entry in self._entries.items()
            if now - entry.last_seen_at > stale_after and entry.blocked_until <= now
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)

    @staticmethod
    def _seconds_until(deadline: float, now: float) -> int:
        return max(1, math.ceil(deadline - now))
