"""
Builderfolio - API Middleware

Starlette middleware stacked by the app factory, outermost first:
correlation ids, request logging, rate limiting, security headers,
body size limits and per-request timeouts.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

if TYPE_CHECKING:
    from starlette.datastructures import QueryParams

logger = structlog.get_logger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]

REDACTED_PARAM_FRAGMENTS = (
    "token", "key", "password", "secret", "auth", "signature", "private",
)
MAX_LOGGED_PARAM_LENGTH = 100

HEALTH_PATHS = frozenset({"/health", "/ready"})


def _json_error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "status_code": status_code, **extra},
    )


def _scrub_param(key: str, value: str) -> str:
    if any(fragment in key.lower() for fragment in REDACTED_PARAM_FRAGMENTS):
        return "[REDACTED]"
    if len(value) > MAX_LOGGED_PARAM_LENGTH:
        return value[:MAX_LOGGED_PARAM_LENGTH] + "...[truncated]"
    return value


def sanitize_query_params(query_params: QueryParams | None) -> str | None:
    """Render query params for a log line with credentials masked."""
    if not query_params:
        return None
    scrubbed = {key: _scrub_param(key, str(value)) for key, value in query_params.items()}
    return str(scrubbed) if scrubbed else None


def get_client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    return request.headers.get("X-Real-IP") or (request.client.host if request.client else "unknown")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with X-Correlation-ID and bind it to the log context."""

    HEADER_NAME = "X-Correlation-ID"

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        correlation_id = request.headers.get(self.HEADER_NAME) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        with structlog.contextvars.bound_contextvars(correlation_id=correlation_id):
            response = await call_next(request)

        response.headers[self.HEADER_NAME] = correlation_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    SKIP_PATHS = HEALTH_PATHS | {"/favicon.ico"}

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        route = {"method": request.method, "path": request.url.path}
        logger.info(
            "request_started",
            query=sanitize_query_params(request.query_params),
            client_ip=get_client_ip(request),
            **route,
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = round((time.perf_counter() - started) * 1000, 2)
            logger.exception("request_failed", duration_ms=elapsed, error=str(e), **route)
            raise

        elapsed = round((time.perf_counter() - started) * 1000, 2)
        if response.status_code >= 500:
            log = logger.error
        elif response.status_code >= 400:
            log = logger.warning
        else:
            log = logger.info
        log("request_completed", status_code=response.status_code, duration_ms=elapsed, **route)

        response.headers["X-Response-Time"] = f"{elapsed:.2f}ms"
        return response


@dataclass
class RateWindow:
    """Hits recorded for one client since `opened_at`."""

    opened_at: float
    hits: int = 0


class FixedWindowLimiter:
    """In-process fixed-window counter keyed by client."""

    SWEEP_INTERVAL = 300.0

    def __init__(self, limit: int, window_seconds: int):
        self.limit = limit
        self.window_seconds = window_seconds
        self._windows: dict[str, RateWindow] = {}
        self._last_sweep = time.monotonic()

    def hit(self, key: str, now: float | None = None) -> tuple[bool, int]:
        """
        Record one request for `key`.

        Returns (allowed, n) where n is the remaining allowance when allowed,
        or the seconds until the window resets when not.
        """
        now = time.monotonic() if now is None else now
        window = self._windows.get(key)
        if window is None or now - window.opened_at >= self.window_seconds:
            window = self._windows[key] = RateWindow(opened_at=now)

        if window.hits >= self.limit:
            return False, max(1, int(window.opened_at + self.window_seconds - now))

        window.hits += 1
        self._sweep(now)
        return True, self.limit - window.hits

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.SWEEP_INTERVAL:
            return
        self._last_sweep = now
        stale = [
            key for key, window in self._windows.items()
            if now - window.opened_at > 2 * self.window_seconds
        ]
        for key in stale:
            del self._windows[key]
        if stale:
            logger.debug("rate_limit_windows_swept", removed=len(stale))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-IP fixed-window limit. Counters live in process memory, so each
    worker enforces its own allowance.
    """

    def __init__(self, app: Any, max_requests: int = 100, window_seconds: int = 900) -> None:
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.limiter = FixedWindowLimiter(max_requests, window_seconds)

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        if request.url.path in HEALTH_PATHS:
            return await call_next(request)

        client_ip = get_client_ip(request)
        allowed, n = self.limiter.hit(f"ip:{client_ip}")
        if not allowed:
            logger.warning("rate_limit_exceeded", path=request.url.path, client_ip=client_ip)
            response = _json_error(
                429, "Too many requests, please try again later", retry_after_seconds=n
            )
            response.headers["Retry-After"] = str(n)
            return response

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(n)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """The API serves JSON only, so the CSP denies everything."""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'; base-uri 'none'",
        "Cross-Origin-Resource-Policy": "same-site",
    }
    HSTS = "max-age=31536000; includeSubDomains"

    def __init__(self, app: Any, enable_hsts: bool = False) -> None:
        super().__init__(app)
        self.enable_hsts = enable_hsts

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        response = await call_next(request)
        response.headers.update(self.HEADERS)
        if self.enable_hsts:
            response.headers["Strict-Transport-Security"] = self.HSTS
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Refuse bodies whose declared Content-Length exceeds the limit (default 1MB)."""

    def __init__(self, app: Any, max_content_length: int = 1024 * 1024) -> None:
        super().__init__(app)
        self.max_content_length = max_content_length

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        declared = request.headers.get("Content-Length", "")
        if declared.isdigit() and int(declared) > self.max_content_length:
            return _json_error(
                413, "Request entity too large", max_size_bytes=self.max_content_length
            )
        return await call_next(request)


class RequestTimeoutMiddleware(BaseHTTPMiddleware):
    """
    Cap request processing time. Endpoints that wait on a transaction
    receipt get the longer allowance.
    """

    EXTENDED_TIMEOUT_PATHS = {
        "/api/profile/mint-nft",
        "/api/support/log",
    }

    def __init__(
        self,
        app: Any,
        default_timeout: float = 30.0,
        extended_timeout: float = 150.0,
    ) -> None:
        super().__init__(app)
        self.default_timeout = default_timeout
        self.extended_timeout = extended_timeout

    def timeout_for(self, path: str) -> float:
        if path in self.EXTENDED_TIMEOUT_PATHS:
            return self.extended_timeout
        return self.default_timeout

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        path = request.url.path
        timeout = self.timeout_for(path)
        try:
            return await asyncio.wait_for(call_next(request), timeout=timeout)
        except TimeoutError:
            logger.warning("request_timeout", path=path, method=request.method, timeout=timeout)
            return _json_error(504, "Request timeout", path=path)


__all__ = [
    "CorrelationIdMiddleware",
    "RequestLoggingMiddleware",
    "RateLimitMiddleware",
    "FixedWindowLimiter",
    "SecurityHeadersMiddleware",
    "RequestSizeLimitMiddleware",
    "RequestTimeoutMiddleware",
    "get_client_ip",
    "sanitize_query_params",
]
