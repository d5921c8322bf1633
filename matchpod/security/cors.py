"""
================================================================================
FILE: matchpod/security/cors.py
================================================================================

PURPOSE:
    Environment-driven CORS policy.

    - production:  production origins only, exact match, strict headers
    - development: every origin allowed (dev + ngrok + render for route checks)
    - anything else (test): development origins

    Origins may contain '*' wildcards (https://*.onrender.com). Extra origins
    from CORS_ORIGINS are appended in every environment.

KEY FACTS:
    - A request without an Origin header (native mobile app, curl) is allowed
    - '*' matches any run of characters; everything else in the pattern is
      matched literally and the whole origin must match
    - Starlette's CORSMiddleware enforces the policy; this module only
      decides what to hand it
"""

import logging
import re
from dataclasses import dataclass, field, replace
from functools import lru_cache
from typing import Iterable, List, Optional, Sequence, Tuple

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from matchpod.config.constants import (
    CORS_ALLOWED_HEADERS,
    CORS_EXPOSED_HEADERS,
    CORS_MAX_AGE_DEFAULT,
    CORS_MAX_AGE_DEVELOPMENT,
    CORS_MAX_AGE_STRICT,
    CORS_METHODS,
    CORS_STRICT_ALLOWED_HEADERS,
    CORS_STRICT_EXPOSED_HEADERS,
    CORS_STRICT_METHODS,
    DEVELOPMENT_ORIGINS,
    NGROK_ORIGINS,
    PRODUCTION_ORIGINS,
    RENDER_ORIGINS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorsOptions:
    """Arguments for Starlette's CORSMiddleware."""

    allow_origins: Tuple[str, ...] = ()
    allow_origin_regex: Optional[str] = None
    allow_methods: Tuple[str, ...] = CORS_METHODS
    allow_headers: Tuple[str, ...] = CORS_ALLOWED_HEADERS
    expose_headers: Tuple[str, ...] = CORS_EXPOSED_HEADERS
    allow_credentials: bool = True
    max_age: int = CORS_MAX_AGE_DEFAULT
    # Origin patterns the policy was built from (for logging / route checks)
    origins: Tuple[str, ...] = field(default=(), compare=False)

    def middleware_kwargs(self) -> dict:
        return {
            "allow_origins": list(self.allow_origins),
            "allow_origin_regex": self.allow_origin_regex,
            "allow_methods": list(self.allow_methods),
            "allow_headers": list(self.allow_headers),
            "expose_headers": list(self.expose_headers),
            "allow_credentials": self.allow_credentials,
            "max_age": self.max_age,
        }

# ================================================================================
# ORIGIN MATCHING
# ================================================================================

def wildcard_to_regex(pattern: str) -> str:
    """Translate an origin pattern to an unanchored regex body."""
    return ".*".join(re.escape(part) for part in pattern.split("*"))


@lru_cache(maxsize=256)
def _compiled(pattern: str) -> "re.Pattern[str]":
    return re.compile(f"^{wildcard_to_regex(pattern)}$")


def origin_matches(origin: str, pattern: str) -> bool:
    if "*" in pattern:
        return _compiled(pattern).match(origin) is not None
    return origin == pattern


def is_origin_allowed(origin: Optional[str], allowed: Iterable[str]) -> bool:
    """
    Check an Origin header value against allowed patterns.

    A missing origin is allowed (mobile apps, Postman, server-to-server).
    """
    if not origin:
        return True
    if any(origin_matches(origin, pattern) for pattern in allowed):
        return True
    logger.warning(f"CORS: Blocked origin {origin}")
    return False

# ================================================================================
# POLICY BY ENVIRONMENT
# ================================================================================

def get_allowed_origins(environment: str, extra: Sequence[str] = ()) -> List[str]:
    if environment == "production":
        origins = list(PRODUCTION_ORIGINS)
    elif environment == "development":
        origins = [*DEVELOPMENT_ORIGINS, *NGROK_ORIGINS, *RENDER_ORIGINS]
    else:
        origins = list(DEVELOPMENT_ORIGINS)

    for origin in extra:
        if origin not in origins:
            origins.append(origin)
    return origins


def _origin_policy(origins: Sequence[str]) -> Tuple[Tuple[str, ...], Optional[str]]:
    """Split patterns into an exact list and one combined wildcard regex."""
    exact = tuple(o for o in origins if "*" not in o)
    wildcards = [wildcard_to_regex(o) for o in origins if "*" in o]
    regex = f"^(?:{'|'.join(wildcards)})$" if wildcards else None
    return exact, regex


def get_cors_options(environment: str, extra: Sequence[str] = ()) -> CorsOptions:
    """
    Get CORS options for the environment.

    Args:
        environment: development | production | test
        extra: additional origin patterns from CORS_ORIGINS
    """
    if environment == "production":
        origins = get_allowed_origins(environment, extra)
        exact, regex = _origin_policy(origins)
        return CorsOptions(
            allow_origins=exact,
            allow_origin_regex=regex,
            allow_methods=CORS_STRICT_METHODS,
            allow_headers=CORS_STRICT_ALLOWED_HEADERS,
            expose_headers=CORS_STRICT_EXPOSED_HEADERS,
            max_age=CORS_MAX_AGE_STRICT,
            origins=tuple(origins),
        )

    if environment == "development":
        return CorsOptions(
            allow_origins=("*",),
            allow_headers=CORS_ALLOWED_HEADERS + (
                "Access-Control-Allow-Origin",
                "Access-Control-Allow-Headers",
                "Access-Control-Allow-Methods",
            ),
            max_age=CORS_MAX_AGE_DEVELOPMENT,
            origins=("*",),
        )

    origins = get_allowed_origins(environment, extra)
    exact, regex = _origin_policy(origins)
    return CorsOptions(
        allow_origins=exact,
        allow_origin_regex=regex,
        origins=tuple(origins),
    )


def cors_for_route(route: str, environment: str, extra: Sequence[str] = ()) -> CorsOptions:
    """Narrower CORS options for sensitive route groups."""
    base = get_cors_options(environment, extra)
    origins = get_allowed_origins(environment, extra)
    exact, regex = _origin_policy(origins)
    scoped = replace(base, allow_origins=exact, allow_origin_regex=regex, origins=tuple(origins))

    if route == "/api/auth":
        return replace(
            scoped,
            allow_methods=("POST", "OPTIONS"),
            allow_headers=("Content-Type", "Authorization"),
        )
    if route == "/api/upload":
        return replace(
            scoped,
            allow_methods=("POST", "OPTIONS"),
            allow_headers=("Content-Type", "Authorization"),
            max_age=0,
        )
    if route == "/api/chat":
        return replace(
            scoped,
            allow_methods=("GET", "POST", "PUT", "OPTIONS"),
            allow_headers=("Content-Type", "Authorization", "X-Request-ID"),
        )
    return base


def validate_origin_for_route(
    origin: str,
    route: str,
    environment: str,
    extra: Sequence[str] = (),
) -> bool:
    """
    Origin check with extra route rules on top of the allowed list.

    - /api/auth: no ngrok tunnels outside development
    - /api/upload: no localhost outside development
    """
    if not is_origin_allowed(origin, get_allowed_origins(environment, extra)):
        return False

    is_development = environment == "development"
    if route == "/api/auth":
        return "ngrok" not in origin or is_development
    if route == "/api/upload":
        return "localhost" not in origin or is_development
    return True


def apply_cors(app: FastAPI, options: CorsOptions) -> None:
    """Install CORSMiddleware with the given options."""
    app.add_middleware(CORSMiddleware, **options.middleware_kwargs())
    logger.info(
        "CORS configured: %s",
        ", ".join(options.origins) if options.origins else "no cross-origin access",
    )
