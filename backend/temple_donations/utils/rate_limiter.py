"""
In-memory fixed-window rate limiter for the donation initiation endpoint.
One limiter per application; counts are per client IP.
"""
import threading
import time
from typing import Callable, Dict, Tuple

from fastapi import HTTPException, Request


class RateLimiter:
    """Allows ``requests`` calls per ``window`` seconds for each client IP."""

    def __init__(self, requests: int, window: int, clock: Callable[[], float] = time.monotonic):
        self.requests = requests
        self.window = window
        self.clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}  # ip -> (window_start, count)
        self._lock = threading.Lock()

    def hit(self, key: str) -> float:
        """Count one request for ``key``.

        Returns 0 when allowed, otherwise the seconds left in the window.
        """
        now = self.clock()
        with self._lock:
            self._prune(now)
            started, count = self._windows.get(key, (now, 0))
            if count >= self.requests:
                return max(self.window - (now - started), 1)
            self._windows[key] = (started, count + 1)
            return 0

    def _prune(self, now: float) -> None:
        expired = [k for k, (started, _) in self._windows.items() if now - started >= self.window]
        for k in expired:
            del self._windows[k]

    def __call__(self, request: Request) -> bool:
        ip = request.client.host if request.client else "unknown"
        retry_after = self.hit(ip)
        if retry_after:
            raise HTTPException(
                status_code=429,
                detail=f"Too many donation attempts. Try again in {int(retry_after)} seconds.",
                headers={"Retry-After": str(int(retry_after))},
            )
        return True


def rate_limit(requests: int, window: int) -> RateLimiter:
    """
    Dependency factory for rate limiting.
    Example: app.state.initiate_limiter = rate_limit(requests=10, window=60)
    """
    return RateLimiter(requests, window)
