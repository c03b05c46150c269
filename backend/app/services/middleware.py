"""Request tracing, rate limiting and security header middleware for the HR backend."""
import os
import time
import uuid
import logging
from collections import defaultdict, deque
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger("hr-api.middleware")

SKIP_LOG_PATHS = {"/health"}
REQUEST_ID_HEADER = "X-Request-ID"

# (path prefix, requests per minute); first match wins, the rest share the general bucket
RATE_LIMIT_RULES = [
    ("/api/v1/analysis/workforce", 5),
]
RATE_LIMIT_WINDOW_SECONDS = 60


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """
    Reuses the caller's X-Request-ID (or mints a uuid4), exposes it on
    request.state, returns it with X-Process-Time, and logs one structured
    line per request outside SKIP_LOG_PATHS.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.perf_counter()

        response: Response = await call_next(request)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = str(duration_ms)

        if request.url.path not in SKIP_LOG_PATHS:
            log = logger.warning if response.status_code >= 500 else logger.info
            log(
                "request completed",
                extra={
                    "http_method": request.method,
                    "http_path": request.url.path,
                    "http_status": response.status_code,
                    "request_id": request_id,
                    "duration_ms": duration_ms,
                },
            )

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding-window limiter keyed by client IP.

    Paths matching RATE_LIMIT_RULES get their own bucket (the workforce
    analysis may call the LLM); everything else shares RATE_LIMIT_PER_MINUTE.
    """

    def __init__(self, app, general_limit: int = None):
        super().__init__(app)
        self.general_limit = general_limit or int(os.getenv("RATE_LIMIT_PER_MINUTE", "120"))
        self._hits: dict = defaultdict(deque)

    def _bucket(self, ip: str, path: str) -> tuple[str, int]:
        for prefix, limit in RATE_LIMIT_RULES:
            if path.startswith(prefix):
                return f"{ip}:{prefix}", limit
        return f"{ip}:general", self.general_limit

    async def dispatch(self, request: Request, call_next):
        ip = request.client.host if request.client else "unknown"
        key, limit = self._bucket(ip, request.url.path)
        now = time.monotonic()
        hits = self._hits[key]
        while hits and now - hits[0] > RATE_LIMIT_WINDOW_SECONDS:
            hits.popleft()
        if len(hits) >= limit:
            logger.warning(f"Rate limit hit for {key} ({limit}/min)")
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests. Please slow down."},
                headers={"Retry-After": str(RATE_LIMIT_WINDOW_SECONDS)},
            )
        hits.append(now)
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Standard hardening headers on every response."""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        "Referrer-Policy": "strict-origin-when-cross-origin",
    }

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in self.HEADERS.items():
            response.headers[name] = value
        return response
