"""Fixed window rate limiting per client IP.

Every response carries the standard ``RateLimit-*`` headers. Requests over
the limit get a 429 with ``Retry-After``.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Too many requests from this IP, please try again after 15 minutes."
INTERNAL_ERROR_MESSAGE = "Internal server error."


@dataclass
class RateLimitStatus:
    """Outcome of counting one request."""
    allowed: bool
    limit: int
    remaining: int
    reset_after: int    # Seconds until the window restarts


class FixedWindowRateLimiter:
    """Counts hits per key in fixed windows that start at a key's first hit."""

    def __init__(
        self,
        limit: int = 100,
        window_seconds: int = 15 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        # key -> (window start, hits)
        self._windows: dict[str, tuple[float, int]] = {}

    def hit(self, key: str) -> RateLimitStatus:
        """Count a request for ``key`` and report whether it is allowed."""
        now = self._clock()
        start, hits = self._windows.get(key, (now, 0))

        if now - start >= self.window_seconds:
            start, hits = now, 0
            self._prune(now)

        hits += 1
        self._windows[key] = (start, hits)

        reset_after = max(0, math.ceil(start + self.window_seconds - now))
        return RateLimitStatus(
            allowed=hits <= self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - hits),
            reset_after=reset_after,
        )

    def _prune(self, now: float) -> None:
        expired = [
            key for key, (start, _) in self._windows.items()
            if now - start >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]

    def reset(self) -> None:
        """Forget every window (useful for testing)."""
        self._windows.clear()


def client_identity(request: Request) -> str:
    """Rate limit key for a request."""
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Apply a FixedWindowRateLimiter to every route."""

    def __init__(self, app, limiter: FixedWindowRateLimiter, message: str = DEFAULT_MESSAGE):
        super().__init__(app)
        self.limiter = limiter
        self.message = message

    async def dispatch(self, request: Request, call_next) -> Response:
        key = client_identity(request)
        status = self.limiter.hit(key)

        if status.allowed:
            try:
                response = await call_next(request)
            except Exception as e:
                # Unhandled errors still get a shaped 500 that carries the headers
                logger.error(f"Unhandled Error on {request.method} {request.url.path}", exc_info=e)
                response = JSONResponse(status_code=500, content={"error": INTERNAL_ERROR_MESSAGE})
        else:
            logger.warning(f"Rate limit exceeded for {key} on {request.url.path}")
            response = JSONResponse(status_code=429, content={"error": self.message})
            response.headers["Retry-After"] = str(status.reset_after)

        response.headers["RateLimit-Limit"] = str(status.limit)
        response.headers["RateLimit-Remaining"] = str(status.remaining)
        response.headers["RateLimit-Reset"] = str(status.reset_after)
        return response
