"""
NoteKeeper Backend: Rate Limiting Middleware
=============================================

What:  Per-IP sliding-window request limit.
How:   Keeps request timestamps per client IP in memory; when the last
       RATE_LIMIT_WINDOW seconds already hold RATE_LIMIT_REQUESTS entries,
       the request is answered with 429 and a Retry-After header.
When:  Outermost middleware, so rejected requests cost almost nothing.

State is per process. Running several workers multiplies the effective limit.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from notekeeper.config import settings
from notekeeper.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

# Sweep idle IPs after this many recorded requests
SWEEP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Args:
        max_requests:   requests allowed per window (default RATE_LIMIT_REQUESTS)
        window_seconds: window length (default RATE_LIMIT_WINDOW)

    /health and the API docs are never limited.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._recorded = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.monotonic()
        window_start = now - self.window_seconds

        timestamps = self._requests[client_ip]
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

        if len(timestamps) >= self.max_requests:
            retry_after = int(timestamps[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds",
                client_ip, len(timestamps), self.window_seconds,
            )
            return self._reject(RateLimitExceededError(retry_after=retry_after))

        timestamps.append(now)
        self._recorded += 1
        if self._recorded % SWEEP_EVERY == 0:
            self._sweep(window_start)

        return await call_next(request)

    @staticmethod
    def _reject(exc: RateLimitExceededError) -> JSONResponse:
        # Raised exceptions inside BaseHTTPMiddleware bypass the app's
        # exception handlers, so the 429 body is built here
        return JSONResponse(
            status_code=429,
            content={
                "error": "rate_limit_exceeded",
                "message": exc.message,
                "details": exc.context,
            },
            headers={"Retry-After": str(exc.retry_after)},
        )

    def _sweep(self, window_start: float) -> None:
        idle = [ip for ip, stamps in self._requests.items() if not stamps or stamps[-1] <= window_start]
        for ip in idle:
            del self._requests[ip]
        if idle:
            logger.debug("Dropped rate-limit state for %d idle client(s)", len(idle))
