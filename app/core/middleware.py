"""HTTP middleware: security headers, rate limiting, request logging and error capture."""

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response, status

from app.core.errors import error_response, unhandled_error_handler

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-site",
}

# Health probes are polled constantly and would drown the log
UNLOGGED_PATHS = {"/health", "/healthcheck"}

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again in an hour!"


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def security_headers(request: Request, call_next: CallNext) -> Response:
    """Add the standard hardening headers to every response."""
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


class RateLimiter:
    """Fixed-window request counter per client address.

    Only paths under ``prefix`` are counted. ``max_requests`` of 0 turns the
    limiter off.
    """

    def __init__(self, max_requests: int, window_seconds: int, prefix: str = "/api"):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.prefix = prefix
        self._windows: dict[str, tuple[float, int]] = {}
        self._last_prune = time.monotonic()

    def prune(self, now: float) -> None:
        """Forget clients whose window has ended."""
        expired = [key for key, (started, _) in self._windows.items() if now - started >= self.window_seconds]
        for key in expired:
            del self._windows[key]
        self._last_prune = now

    def hit(self, key: str, now: float | None = None) -> bool:
        """Count one request for ``key``; returns False once the limit is exceeded."""
        now = time.monotonic() if now is None else now
        # Sweep at most once per window
        if now - self._last_prune >= self.window_seconds:
            self.prune(now)
        started, count = self._windows.get(key, (now, 0))
        if now - started >= self.window_seconds:
            started, count = now, 0
        count += 1
        self._windows[key] = (started, count)
        return count <= self.max_requests

    async def __call__(self, request: Request, call_next: CallNext) -> Response:
        if self.max_requests <= 0 or not request.url.path.startswith(self.prefix):
            return await call_next(request)
        if not self.hit(_client_host(request)):
            logger.warning("Rate limit exceeded for %s", _client_host(request))
            return error_response(status.HTTP_429_TOO_MANY_REQUESTS, RATE_LIMIT_MESSAGE)
        return await call_next(request)


async def log_requests(request: Request, call_next: CallNext) -> Response:
    """Log all incoming requests"""
    if request.url.path in UNLOGGED_PATHS:
        return await call_next(request)

    start_time = time.perf_counter()
    logger.info(">> %s %s - %s", request.method, request.url.path, _client_host(request))
    if request.query_params and not request.app.state.settings.is_production:
        logger.debug("   query: %s", dict(request.query_params))
    try:
        response = await call_next(request)
    except Exception as exc:
        duration = time.perf_counter() - start_time
        logger.error("[ERROR] %s %s - Error: %s (%.2fs)", request.method, request.url.path, exc, duration)
        raise
    duration = time.perf_counter() - start_time
    logger.info("<< %s %s - %s (%.2fs)", request.method, request.url.path, response.status_code, duration)
    return response


async def catch_unhandled_errors(request: Request, call_next: CallNext) -> Response:
    """Answer unexpected exceptions with the generic 500 inside the middleware stack.

    Starlette would otherwise build that response in its outermost layer,
    bypassing the CORS and security headers.
    """
    try:
        return await call_next(request)
    except Exception as exc:
        return await unhandled_error_handler(request, exc)
