"""
Per-IP rate limiting middleware with in-memory fixed windows.

- MAX_REQUESTS_PER_MINUTE requests per client IP per 60 second window
- Health, metrics, docs and the root banner are exempt
- Counters live in process memory; stale windows are pruned once per window
"""
import time
from typing import Callable, Dict

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from podsearch.core.logging import get_logger
from podsearch.core.metrics import record_rate_limit_hit
from podsearch.models.responses import ErrorDetail, ErrorEnvelope

logger = get_logger(__name__)

WINDOW_SECONDS = 60
DEFAULT_MAX_REQUESTS = 30

EXEMPT_PATHS = {"/", "/api/health", "/api/health/config", "/metrics", "/docs", "/openapi.json", "/redoc"}


def get_client_ip(request: Request) -> str:
    """Extract client IP from request headers."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


class WindowCounter:
    __slots__ = ("count", "window_start")

    def __init__(self, window_start: float):
        self.count = 0
        self.window_start = window_start


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window request counter keyed by client IP."""

    def __init__(
        self,
        app,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: int = WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._counters: Dict[str, WindowCounter] = {}
        self._last_prune = clock()

    async def dispatch(self, request: Request, call_next):
        path = request.url.path.rstrip("/") or "/"
        if path in EXEMPT_PATHS:
            return await call_next(request)

        client_ip = get_client_ip(request)
        allowed, remaining, reset_at = self.check(client_ip)

        if not allowed:
            record_rate_limit_hit(path)
            retry_after = max(1, int(reset_at - self._clock() + 0.999))
            logger.warning(
                "rate_limit_exceeded",
                ip=client_ip,
                path=path,
                limit=self.max_requests,
            )
            body = ErrorEnvelope(
                error=ErrorDetail(
                    message=f"Rate limit exceeded. Maximum {self.max_requests} requests per minute.",
                    type="RateLimitExceeded",
                ),
            ).model_dump(by_alias=True)
            body["retryAfter"] = retry_after
            response = JSONResponse(status_code=status.HTTP_429_TOO_MANY_REQUESTS, content=body)
            response.headers["Retry-After"] = str(retry_after)
            response.headers["X-RateLimit-Limit"] = str(self.max_requests)
            response.headers["X-RateLimit-Remaining"] = "0"
            response.headers["X-RateLimit-Reset"] = str(int(reset_at))
            return response

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(int(reset_at))
        return response

    def check(self, identifier: str) -> tuple[bool, int, float]:
        """
        Count one request for identifier.

        Returns:
            (allowed, remaining, reset_time)
        """
        now = self._clock()
        self._prune(now)

        counter = self._counters.get(identifier)
        if counter is None or now - counter.window_start >= self.window_seconds:
            counter = WindowCounter(window_start=now)
            self._counters[identifier] = counter

        reset_at = counter.window_start + self.window_seconds
        if counter.count >= self.max_requests:
            return False, 0, reset_at

        counter.count += 1
        return True, self.max_requests - counter.count, reset_at

    def _prune(self, now: float) -> None:
        if now - self._last_prune < self.window_seconds:
            return
        stale = [
            key for key, counter in self._counters.items()
            if now - counter.window_start >= self.window_seconds
        ]
        for key in stale:
            del self._counters[key]
        self._last_prune = now
        if stale:
            logger.debug("rate_limit_pruned", count=len(stale))

    def tracked_clients(self) -> int:
        return len(self._counters)
