"""
In-process rate limiting and caching

Design:
- TTLCache: LRU map with per-entry expiry, bounds memory for per-IP buckets
- SlidingWindowLimiter: deque of request timestamps per key, no burst at window edges
- ModelQuota: global per-model daily counters for the expensive AI models

Limitations:
- Per process: counters are lost on restart and not shared between workers
"""

import time
import logging
from collections import OrderedDict, deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, Optional, Union

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from aimarker.config import settings

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60

_MISSING = object()


class TTLCache:
    """LRU cache whose entries also expire after ttl_seconds"""

    def __init__(
        self,
        max_size: int = 10000,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._data: "OrderedDict[str, tuple]" = OrderedDict()

    def _expired(self, expires_at: Optional[float]) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._data.get(key, _MISSING)
        if entry is _MISSING:
            return default
        value, expires_at = entry
        if self._expired(expires_at):
            del self._data[key]
            return default
        self._data.move_to_end(key)
        return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        expires_at = self._clock() + ttl if ttl is not None else None
        if key in self._data:
            self._data.move_to_end(key)
        self._data[key] = (value, expires_at)
        while len(self._data) > self.max_size:
            evicted, _ = self._data.popitem(last=False)
            logger.debug(f"Evicted rate limit bucket {evicted}")

    def delete(self, key: str) -> bool:
        return self._data.pop(key, _MISSING) is not _MISSING

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        return len(self._data)


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int
    retry_after: int = 0

    def headers(self) -> Dict[str, str]:
        headers = {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class SlidingWindowLimiter:
    """Allow at most max_requests per key within any window_seconds span"""

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        cache: Optional[TTLCache] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self.cache = cache or TTLCache(settings.rate_limit_cache_size, window_seconds, clock=clock)

    def hit(self, key: str) -> RateLimitResult:
        # Zero or negative max_requests always blocks
        if self.max_requests <= 0:
            wait = max(1, self.window_seconds)
            return RateLimitResult(False, 0, 0, wait, wait)

        now = self._clock()
        dq: Optional[Deque[float]] = self.cache.get(key)
        if dq is None:
            dq = deque()

        # purge old entries outside window
        cutoff = now - self.window_seconds
        while dq and dq[0] <= cutoff:
            dq.popleft()

        if len(dq) >= self.max_requests:
            retry_after = max(1, int(dq[0] + self.window_seconds - now) + 1)
            self.cache.set(key, dq)
            return RateLimitResult(False, self.max_requests, 0, retry_after, retry_after)

        dq.append(now)
        self.cache.set(key, dq)
        reset_after = max(1, int(dq[0] + self.window_seconds - now))
        return RateLimitResult(True, self.max_requests, self.max_requests - len(dq), reset_after)

    def reset(self) -> None:
        self.cache.clear()


class ModelQuota:
    """Global (all clients) daily request caps per model"""

    def __init__(
        self,
        daily_limits: Dict[str, int],
        cache: Optional[TTLCache] = None,
        clock: Callable[[], float] = time.time
    ):
        self.daily_limits = dict(daily_limits)
        self._clock = clock
        self.cache = cache or TTLCache(max(1, len(self.daily_limits) * 4), clock=clock)

    @staticmethod
    def cache_key(model: str) -> str:
        return f"global_daily_{model}"

    def _record(self, model: str) -> Dict[str, float]:
        now = self._clock()
        record = self.cache.get(self.cache_key(model))
        if record is None or now > record['reset_time']:
            record = {'count': 0, 'reset_time': now + DAY_SECONDS}
        return record

    def consume(self, model: str) -> bool:
        """Count one request against the model's daily cap; False once exhausted"""
        limit = self.daily_limits.get(model)
        if limit is None:
            return True

        record = self._record(model)
        if record['count'] >= limit:
            return False
        record['count'] += 1
        self.cache.set(self.cache_key(model), record)
        return True

    def remaining(self, model: str) -> Union[int, str]:
        limit = self.daily_limits.get(model)
        if limit is None:
            return "Unlimited"
        return max(0, limit - self._record(model)['count'])

    def reset(self) -> None:
        self.cache.clear()


def get_client_ip(request: Request) -> str:
    """Client address, trusting one proxy hop"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


api_limiter = SlidingWindowLimiter(settings.api_rate_limit_max, settings.api_rate_limit_window_seconds)
ai_limiter = SlidingWindowLimiter(settings.ai_rate_limit_max, settings.ai_rate_limit_window_seconds)
model_quota = ModelQuota(settings.model_daily_limits)


def reset_rate_limits() -> None:
    """Clear every in-process counter"""
    api_limiter.reset()
    ai_limiter.reset()
    model_quota.reset()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP limit for everything under a path prefix"""

    def __init__(self, app, limiter: Optional[SlidingWindowLimiter] = None, prefix: str = "/api"):
        super().__init__(app)
        self.limiter = limiter
        self.prefix = prefix

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.prefix) or request.method == "OPTIONS":
            return await call_next(request)

        limiter = self.limiter or api_limiter
        result = limiter.hit(get_client_ip(request))
        if not result.allowed:
            logger.warning(f"Rate limit exceeded for {get_client_ip(request)} on {request.url.path}")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "success": False,
                    "message": "Too many requests, please try again later."
                },
                headers=result.headers()
            )

        response = await call_next(request)
        for name, value in result.headers().items():
            response.headers[name] = value
        return response


def ai_rate_limit(default_model: Optional[str] = None):
    """
    Build the dependency guarding an AI route

    Applies the per-IP AI limiter, then the daily cap of the requested model
    (the body's "model", or default_model when absent).
    """

    async def dependency(request: Request) -> None:
        ip = get_client_ip(request)
        result = ai_limiter.hit(ip)
        if not result.allowed:
            logger.warning(f"AI rate limit exceeded for {ip}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "success": False,
                    "message": f"Too many AI requests. Please retry in {result.retry_after}s."
                },
                headers=result.headers()
            )

        try:
            body = await request.json()
        except ValueError:
            body = {}
        model = body.get("model") if isinstance(body, dict) else None
        if not isinstance(model, str) or not model:
            model = default_model
        if model and not model_quota.consume(model):
            logger.warning(f"Daily limit reached for model {model}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "error": f"Daily limit reached for model {model}. Please try again tomorrow or choose a different model.",
                    "model": model
                }
            )

    return dependency
