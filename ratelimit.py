import math
import time
from typing import Dict, Optional, Tuple


class RateLimiter:
    """Fixed-window request counter keyed by client address."""

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_sweep: Optional[float] = None

    def hit(self, key: str, now: Optional[float] = None) -> Tuple[bool, int, int]:
        """Count one request for ``key``.

        Returns ``(allowed, remaining, reset_seconds)``.
        """
        now = time.monotonic() if now is None else now
        self._sweep(now)
        start, count = self._windows.get(key, (now, 0))
        if now - start >= self.window_seconds:
            start, count = now, 0
        count += 1
        self._windows[key] = (start, count)
        reset = max(0, math.ceil(start + self.window_seconds - now))
        return count <= self.max_requests, max(0, self.max_requests - count), reset

    def _sweep(self, now: float) -> None:
        # Drop expired windows at most once per window.
        if self._last_sweep is not None and now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        expired = [k for k, (start, _) in self._windows.items() if start + self.window_seconds <= now]
        for k in expired:
            del self._windows[k]

    def tracked(self) -> int:
        return len(self._windows)

    def headers(self, remaining: int, reset: int) -> dict:
        return {
            "RateLimit-Limit": str(self.max_requests),
            "RateLimit-Remaining": str(remaining),
            "RateLimit-Reset": str(reset),
        }

    def reset(self) -> None:
        self._windows.clear()
        self._last_sweep = None
