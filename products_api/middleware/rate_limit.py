# products_api/middleware/rate_limit.py
import math
import time
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Tuple
from fastapi import Request
from ..exceptions import RateLimitError

logger = logging.getLogger(__name__)


@dataclass
class RateLimitDecision:
    allowed: bool
    remaining: int
    limit: int
    retry_after: int


class RateLimiter:
    """Fixed-window request counter per client key, held in process memory"""

    def __init__(self, name: str, limit: int, window: int, message: str,
                 clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.limit = limit
        self.window = window
        self.message = message
        self._clock = clock
        # key -> (window start, count)
        self._windows: Dict[str, Tuple[float, int]] = {}

    def check(self, key: str) -> RateLimitDecision:
        now = self._clock()
        started, count = self._windows.get(key, (now, 0))
        if now - started >= self.window:
            started, count = now, 0

        retry_after = max(1, math.ceil(self.window - (now - started)))
        if count >= self.limit:
            logger.info(f"Rate limit '{self.name}' exceeded for {key}")
            return RateLimitDecision(False, 0, self.limit, retry_after)

        self._windows[key] = (started, count + 1)
        self._evict(now)
        return RateLimitDecision(True, self.limit - count - 1, self.limit, retry_after)

    def _evict(self, now: float):
        if len(self._windows) < 10000:
            return
        expired = [k for k, (started, _) in self._windows.items() if now - started >= self.window]
        for key in expired:
            del self._windows[key]


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limit(name: str):
    """Dependency applying the limiter registered on app.state under ``name``"""
    async def dependency(request: Request):
        limiter: RateLimiter = request.app.state.rate_limiters[name]
        decision = limiter.check(client_ip(request))
        if not decision.allowed:
            raise RateLimitError(limiter.message, retry_after=decision.retry_after)

    return dependency
