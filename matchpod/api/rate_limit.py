"""
================================================================================
FILE: matchpod/api/rate_limit.py
================================================================================

PURPOSE:
    Redis-backed sliding-window rate limiting.

WORKFLOW:
    1. Each limiter owns a key prefix (rl_api, rl_auth, ...)
    2. consume(): in one transaction, drop timestamps older than the window,
       add this request, count, refresh key expiry
    3. count > points → RateLimitError (429, Retry-After = block_duration)
    4. Otherwise X-RateLimit-* headers are attached to the response

KEY FACTS:
    - Fail-open: Redis disabled / not ready / erroring → request passes
    - No permanent lockouts: keys expire after duration + block_duration
    - Identifier defaults to the client IP (first X-Forwarded-For entry)
    - Limiters are built per app from settings and stored on app.state

USAGE:
    @router.post("/login", dependencies=[Depends(rate_limit("login", login_identifier))])
"""

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Request, Response
from redis.asyncio import Redis

from matchpod.api.errors import rate_limit_response
from matchpod.config.constants import API_PREFIX, RATE_LIMIT_KEY_PREFIX, RATE_LIMIT_PRESETS
from matchpod.config.settings import Settings
from matchpod.core.exceptions import RateLimitError

logger = logging.getLogger(__name__)

Identifier = Callable[[Request], str]


@dataclass(frozen=True)
class RateLimitConfig:
    points: int
    duration: int
    block_duration: int


@dataclass(frozen=True)
class RateLimitInfo:
    remaining: int
    reset: int
    total: int

    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.total),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }


class RateLimiter:
    """Sliding-window limiter over a Redis sorted set."""

    def __init__(self, prefix: str, config: RateLimitConfig):
        self.prefix = prefix
        self.points = config.points
        self.duration = config.duration
        self.block_duration = config.block_duration

    def key(self, identifier: str) -> str:
        return f"{self.prefix}:{identifier}"

    async def consume(self, client: Redis, identifier: str) -> RateLimitInfo:
        """
        Record one request for identifier.

        Raises:
            RateLimitError: if the window already holds more than `points`
        """
        key = self.key(identifier)
        now_ms = int(time.time() * 1000)
        clear_before = now_ms - self.duration * 1000

        pipe = client.pipeline(transaction=True)
        pipe.zremrangebyscore(key, 0, clear_before)
        pipe.zadd(key, {f"{now_ms}:{uuid.uuid4().hex[:8]}": now_ms})
        pipe.zcard(key)
        pipe.expire(key, self.duration + self.block_duration)
        results = await pipe.execute()

        count = int(results[2] or 0) if results else 0

        if count > self.points:
            raise RateLimitError(
                "Too many requests. Please try again later.",
                details={
                    "reset_after": self.block_duration,
                    "limit": self.points,
                    "remaining": 0,
                },
            )

        return RateLimitInfo(
            remaining=max(0, self.points - count),
            reset=self.duration,
            total=self.points,
        )


def build_rate_limiters(settings: Settings) -> Dict[str, RateLimiter]:
    """One limiter per preset; the api preset follows settings."""
    limiters: Dict[str, RateLimiter] = {}
    for kind, preset in RATE_LIMIT_PRESETS.items():
        config = RateLimitConfig(**preset)
        if kind == "api":
            config = RateLimitConfig(
                points=settings.api_rate_limit,
                duration=settings.api_rate_window_seconds,
                block_duration=preset["block_duration"],
            )
        limiters[kind] = RateLimiter(f"{RATE_LIMIT_KEY_PREFIX}_{kind}", config)
    return limiters

# ================================================================================
# IDENTIFIERS
# ================================================================================

def get_client_ip(request: Request) -> str:
    """Client IP, respecting proxy headers."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"

# ================================================================================
# ENFORCEMENT
# ================================================================================

async def check_rate_limit(
    request: Request,
    kind: str,
    identifier: Optional[Identifier] = None,
) -> Optional[RateLimitInfo]:
    """
    Apply limiter `kind` to this request.

    Returns:
        RateLimitInfo, or None when the check was skipped (fail-open)

    Raises:
        RateLimitError: limit exceeded
    """
    state = request.app.state
    redis_handler = getattr(state, "redis_handler", None)

    if redis_handler is None or not redis_handler.enabled or not redis_handler.is_ready:
        logger.debug(f"[Rate Limit] Redis unavailable, skipping {kind} limit (fail-open)")
        return None

    limiter: RateLimiter = state.rate_limiters[kind]
    key = identifier(request) if identifier else get_client_ip(request)

    try:
        return await limiter.consume(redis_handler.client, key)
    except RateLimitError:
        raise
    except Exception as e:
        logger.warning(f"[Rate Limit] Error in {kind} limiter, skipping (fail-open): {str(e)}")
        return None


def rate_limit(kind: str, identifier: Optional[Identifier] = None):
    """
    FastAPI dependency factory for per-route limits.

    RateLimitError propagates to the global handler (429).
    """

    async def _dependency(request: Request, response: Response) -> None:
        info = await check_rate_limit(request, kind, identifier)
        if info is not None:
            response.headers.update(info.headers())

    return _dependency


async def api_rate_limit(request: Request, call_next):
    """HTTP middleware applying the `api` limiter to every /api path."""
    if not request.url.path.startswith(API_PREFIX):
        return await call_next(request)

    try:
        info = await check_rate_limit(request, "api")
    except RateLimitError as e:
        logger.warning(f"[Rate Limit] api limit exceeded for {get_client_ip(request)}")
        return rate_limit_response(e)

    response = await call_next(request)
    if info is not None:
        # Route-specific limiter headers take precedence
        for name, value in info.headers().items():
            response.headers.setdefault(name, value)
    return response
