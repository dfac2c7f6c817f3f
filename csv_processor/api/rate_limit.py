# csv_processor/api/rate_limit.py
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from csv_processor.config import RateLimitConfig

class SlidingWindowRateLimiter:
    """In-memory sliding-window request counter keyed by caller identity.

    Callers whose requests have all left the window are swept out once per
    window, so memory tracks recently active callers only. Single-process
    only; multi-process deployments need a shared store behind the same
    interface.
    """

    def __init__(self, max_requests: int = 50, window_seconds: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        if max_requests <= 0 or window_seconds <= 0:
            raise ValueError("max_requests and window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    @classmethod
    def from_config(cls, config: RateLimitConfig, clock: Optional[Callable[[], float]] = None) -> "SlidingWindowRateLimiter":
        return cls(config.MAX_REQUESTS, config.WINDOW_SECONDS, clock or time.monotonic)

    def _recent(self, key: str, now: float) -> Deque[float]:
        """Timestamps still inside the window; empty entries are forgotten"""
        timestamps = self._requests.get(key)
        if timestamps is None:
            return deque()
        while timestamps and now - timestamps[0] >= self.window_seconds:
            timestamps.popleft()
        if not timestamps:
            del self._requests[key]
        return timestamps

    def _record(self, key: str, now: float) -> None:
        self._requests.setdefault(key, deque()).append(now)

    def _sweep(self, now: float, max_age: float) -> int:
        stale = [
            key for key, timestamps in self._requests.items()
            if not timestamps or now - timestamps[-1] >= max_age
        ]
        for key in stale:
            del self._requests[key]
        self._last_sweep = now
        return len(stale)

    def is_allowed(self, key: str) -> bool:
        """Whether ``key`` may make another request right now"""
        with self._lock:
            return len(self._recent(key, self._clock())) < self.max_requests

    def log_request(self, key: str) -> None:
        with self._lock:
            now = self._clock()
            self._recent(key, now)
            self._record(key, now)

    def check(self, key: str) -> bool:
        """Record the request and return True if ``key`` is under its limit"""
        with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now, self.window_seconds)
            if len(self._recent(key, now)) >= self.max_requests:
                return False
            self._record(key, now)
            return True

    def remaining(self, key: str) -> int:
        with self._lock:
            return max(0, self.max_requests - len(self._recent(key, self._clock())))

    @property
    def tracked_callers(self) -> int:
        with self._lock:
            return len(self._requests)

    def cleanup(self, max_age_seconds: Optional[float] = None) -> int:
        """Forget callers with no requests newer than ``max_age_seconds``; returns how many"""
        max_age = self.window_seconds if max_age_seconds is None else max_age_seconds
        with self._lock:
            return self._sweep(self._clock(), max_age)
