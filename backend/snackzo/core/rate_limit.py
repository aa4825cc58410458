"""
Request throttling for the Snackzo backend

Sliding window kept in memory, per process. Two layers:
- RateLimitMiddleware: coarse per-minute budget per caller and route group
- endpoint_rate_limit: tight limits on order placement, top-ups and
  payment completion to stop double submits
"""
import hashlib
import time
from collections import defaultdict, deque
from typing import Deque, Dict, NamedTuple

from fastapi import Request, HTTPException, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse


class RateDecision(NamedTuple):
    allowed: bool
    remaining: int
    retry_after: int


class RateLimiter:
    """Sliding window counter keyed by an arbitrary string"""

    def __init__(self, sweep_every: int = 300):
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._sweep_every = sweep_every
        self._last_sweep = time.monotonic()

    def _sweep(self, now: float):
        # Drop keys nobody has used for a while
        if now - self._last_sweep < self._sweep_every:
            return
        for key in [k for k, hits in self._hits.items() if not hits or now - hits[-1] > self._sweep_every]:
            del self._hits[key]
        self._last_sweep = now

    def hit(self, key: str, limit: int, window_seconds: int = 60) -> RateDecision:
        """Record one request for key unless it is over the limit"""
        now = time.monotonic()
        self._sweep(now)

        hits = self._hits[key]
        while hits and hits[0] <= now - window_seconds:
            hits.popleft()

        if len(hits) >= limit:
            retry_after = int(hits[0] + window_seconds - now) + 1
            return RateDecision(False, 0, retry_after)

        hits.append(now)
        return RateDecision(True, limit - len(hits), 0)

    def reset(self):
        self._hits.clear()


rate_limiter = RateLimiter()


# Requests per minute by path prefix; first match wins
ROUTE_LIMITS = [
    ("/api/v1/admin", 300),
    ("/api/v1/payments", 60),
    ("/api/v1/addresses", 30),
]
SIGNED_IN_LIMIT = 240
GUEST_LIMIT = 120

EXEMPT_PATHS = {"/", "/health", "/docs", "/openapi.json", "/redoc"}


def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For (the API sits behind a proxy), else the peer"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def caller_key(request: Request) -> str:
    """Bearer token fingerprint for signed-in callers, IP for guests"""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return "user:" + hashlib.sha256(auth_header.encode()).hexdigest()[:16]
    return "ip:" + client_ip(request)


def limit_for(path: str, signed_in: bool) -> int:
    for prefix, limit in ROUTE_LIMITS:
        if path.startswith(prefix):
            return limit
    return SIGNED_IN_LIMIT if signed_in else GUEST_LIMIT


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-minute budget per caller

    Sets X-RateLimit-Limit / X-RateLimit-Remaining on every throttled route,
    and Retry-After on 429 responses.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        who = caller_key(request)
        limit = limit_for(path, who.startswith("user:"))
        group = next((prefix for prefix, _ in ROUTE_LIMITS if path.startswith(prefix)), "default")
        decision = rate_limiter.hit(f"{group}:{who}", limit)

        if not decision.allowed:
            # Returned, not raised, so CORS headers are still added
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Too many requests. Please slow down."},
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "Retry-After": str(decision.retry_after),
                }
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response


def endpoint_rate_limit(max_requests: int, window_seconds: int = 60):
    """
    Dependency factory for a tight limit on a single endpoint.

    Usage:
        @router.post("/orders", dependencies=[Depends(endpoint_rate_limit(5, 30))])
        async def place_order(...):
            pass
    """
    async def checker(request: Request):
        decision = rate_limiter.hit(
            f"endpoint:{request.url.path}:{caller_key(request)}",
            max_requests,
            window_seconds,
        )
        if not decision.allowed:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Too many attempts. Try again in {decision.retry_after} seconds.",
                headers={"Retry-After": str(decision.retry_after)},
            )

    return checker
