from __future__ import annotations

from dataclasses import dataclass
from time import time, sleep
from typing import Dict, Optional
import math
import threading


@dataclass
class _Window:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int


class RateLimiter:
    """Fixed-window request counter keyed by client address.

    - A client's window starts on its first request and is reset lazily on
      the first request after it expires.
    - Thread-safe using a simple lock.
    - Optional background thread sweeps entries that have been idle for more
      than one window past expiry, so memory is reclaimed without traffic.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        sweep_interval_seconds: Optional[float] = 300.0,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = float(window_seconds)
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._stop_flag = False
        self._sweep_interval = sweep_interval_seconds
        self._thread: Optional[threading.Thread] = None
        if self._sweep_interval and self._sweep_interval > 0:
            self._thread = threading.Thread(target=self._auto_sweep_loop, daemon=True)
            self._thread.start()

    def _auto_sweep_loop(self) -> None:
        while not self._stop_flag:
            sleep(self._sweep_interval or 300.0)
            self.sweep()

    def stop(self) -> None:
        self._stop_flag = True

    def hit(self, key: str, now: Optional[float] = None) -> RateLimitDecision:
        """Count one request for ``key`` and decide whether it may proceed."""
        now = time() if now is None else now
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                window = _Window(count=0, reset_at=now + self.window_seconds)
                self._windows[key] = window
            if now > window.reset_at:
                window.count = 0
                window.reset_at = now + self.window_seconds

            window.count += 1
            allowed = window.count <= self.max_requests
            retry_after = 0 if allowed else max(1, math.ceil(window.reset_at - now))
            return RateLimitDecision(
                allowed=allowed,
                limit=self.max_requests,
                remaining=max(0, self.max_requests - window.count),
                reset_at=window.reset_at,
                retry_after=retry_after,
            )

    def sweep(self, now: Optional[float] = None) -> int:
        """Evict windows untouched for more than one window past expiry."""
        now = time() if now is None else now
        with self._lock:
            stale = [k for k, w in self._windows.items() if now > w.reset_at + self.window_seconds]
            for k in stale:
                self._windows.pop(k, None)
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def clear_all(self) -> None:
        with self._lock:
            self._windows.clear()
