import math
import time
from dataclasses import dataclass
from typing import Dict, Tuple, Union

from fastapi import HTTPException, Request

PRUNE_INTERVAL_SECONDS = 60


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """
    Fixed-window request counter kept in process memory.
    Not shared between workers.
    """

    def __init__(self, window_seconds: int, max_requests: int):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._entries: Dict[str, _Window] = {}
        self._last_prune = time.monotonic()

    def check(self, key: str) -> Tuple[bool, int]:
        """Returns (allowed, retry_after_ms)."""
        now = time.monotonic()
        self._prune(now)

        entry = self._entries.get(key)
        if entry is None or entry.reset_at <= now:
            self._entries[key] = _Window(count=1, reset_at=now + self.window_seconds)
            return True, 0

        if entry.count >= self.max_requests:
            return False, int((entry.reset_at - now) * 1000)

        entry.count += 1
        return True, 0

    def reset(self):
        self._entries.clear()

    def _prune(self, now: float):
        if now - self._last_prune < PRUNE_INTERVAL_SECONDS:
            return
        self._last_prune = now
        for key in [k for k, v in self._entries.items() if v.reset_at <= now]:
            del self._entries[key]


def get_client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return "unknown"


def enforce(limiter: RateLimiter, key: str, message: Union[str, dict, None] = None):
    allowed, retry_after_ms = limiter.check(key)
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail=message or "Too many requests. Please try again later.",
            headers={"Retry-After": str(math.ceil(retry_after_ms / 1000))},
        )


register_limiter = RateLimiter(window_seconds=15 * 60, max_requests=5)
otp_limiter = RateLimiter(window_seconds=10 * 60, max_requests=3)
lab_lookup_limiter = RateLimiter(window_seconds=60, max_requests=10)
